"""Construct-tree documents.

Language-neutral input: front ends for other languages emit a YAML or
JSON document of already-normalized construct trees::

    language: java
    functions:
      - identifier: Service.handle
        location: {file: Service.java, line: 12}
        body:
          - kind: If
            conditions:
              - operands: [a, b, {operands: [c, d], operators: ["||"]}]
                operators: ["&&", "&&"]
            children:
              - kind: For
          - kind: Switch
            cases: 3
          - kind: RecursiveCall
            target: Service.handle

A malformed function is isolated: it is reported as skipped and the rest
of the document still loads.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from cogscore.errors import CogScoreError, UnmappedConstruct
from cogscore.models.construct import (
    ConstructKind,
    ConstructNode,
    FunctionUnit,
    LogicalExpression,
    SkippedUnit,
    SourceLocation,
)
from cogscore.utils.logging import get_logger

logger = get_logger("frontends.tree")

_NODE_KEYS = {
    "kind",
    "children",
    "location",
    "hints",
    "conditions",
    "cases",
    "target",
    "name",
    "operators",
}


class TreeDocumentError(CogScoreError):
    """A construct-tree document is structurally invalid."""
    pass


def _location(data: Any, default_file: str = "") -> Optional[SourceLocation]:
    if data is None:
        return None
    if isinstance(data, str):
        # "file:line[:column]"
        parts = data.rsplit(":", 2)
        if len(parts) == 3 and parts[1].isdigit() and parts[2].isdigit():
            return SourceLocation(parts[0], int(parts[1]), int(parts[2]))
        if len(parts) >= 2 and parts[-1].isdigit():
            return SourceLocation(":".join(parts[:-1]), int(parts[-1]))
        return SourceLocation(data)
    if isinstance(data, dict):
        return SourceLocation(
            str(data.get("file", default_file)),
            int(data.get("line", 0)),
            int(data.get("column", 0)),
        )
    raise ValueError(f"Invalid location: {data!r}")


def _expression(data: Any) -> LogicalExpression:
    if isinstance(data, str):
        return LogicalExpression((data,))
    if not isinstance(data, dict):
        raise ValueError(f"Invalid logical expression: {data!r}")
    operands = tuple(
        _expression(op) if isinstance(op, dict) else str(op)
        for op in data.get("operands", [])
    )
    return LogicalExpression(
        operands, tuple(data.get("operators", [])), bool(data.get("negated", False))
    )


def _node(data: Any, default_file: str) -> ConstructNode:
    if isinstance(data, str):
        data = {"kind": data}
    if not isinstance(data, dict):
        raise ValueError(f"Construct node must be a mapping, got {data!r}")

    unknown = sorted(set(data) - _NODE_KEYS)
    if unknown:
        raise ValueError(f"Unknown construct node keys: {', '.join(unknown)}")

    location = _location(data.get("location"), default_file)
    if "kind" not in data:
        raise ValueError(f"Construct node without kind at {location}")
    kind = ConstructKind.parse(data["kind"], location)

    hints = data.get("hints") or {}
    if not isinstance(hints, dict):
        raise ValueError(f"hints must be a mapping at {location}")

    for key in ("target", "name"):
        if data.get(key) is not None and not isinstance(data[key], str):
            raise ValueError(f"{key} must be a string at {location}, got {data[key]!r}")

    operators = data.get("operators", 0)
    if isinstance(operators, list):
        operators = len(operators)

    return ConstructNode(
        kind=kind,
        children=tuple(_node(child, default_file) for child in data.get("children") or []),
        location=location,
        language_hints=hints,
        conditions=tuple(_expression(c) for c in data.get("conditions") or []),
        operator_count=int(operators),
        case_count=int(data.get("cases", 0)),
        target=data.get("target"),
        name=data.get("name"),
    )


def _unit(data: Dict[str, Any], language: str, default_file: str) -> FunctionUnit:
    hints = data.get("hints") or {}
    if not isinstance(hints, dict):
        raise ValueError(f"hints must be a mapping, got {hints!r}")
    return FunctionUnit(
        identifier=str(data["identifier"]),
        body=tuple(_node(node, default_file) for node in data.get("body") or []),
        location=_location(data.get("location"), default_file)
        or (SourceLocation(default_file) if default_file else None),
        language=str(data.get("language", language)),
        language_hints=hints,
    )


def load_tree_document(
    source: Union[Path, str, Dict[str, Any]],
) -> Tuple[List[FunctionUnit], List[SkippedUnit]]:
    """Load function units from a construct-tree document.

    Args:
        source: Path to a ``.yaml``/``.yml``/``.json`` file, or an already
            parsed mapping.

    Returns:
        Loaded units and the functions skipped as malformed. Unknown node
        kinds skip the function with an UnmappedConstruct reason.

    Raises:
        TreeDocumentError: if the document itself cannot be read.
    """
    default_file = ""
    if isinstance(source, dict):
        data: Any = source
    else:
        path = Path(source)
        default_file = str(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f) if path.suffix == ".json" else yaml.safe_load(f)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise TreeDocumentError(f"Could not read {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("functions", []), list):
        raise TreeDocumentError("Tree document must be a mapping with a 'functions' list")

    language = str(data.get("language", "generic"))
    default_file = str(data.get("file", default_file))

    units: List[FunctionUnit] = []
    skipped: List[SkippedUnit] = []
    for index, entry in enumerate(data.get("functions") or []):
        identifier = f"<function #{index + 1}>"
        if isinstance(entry, dict) and "identifier" in entry:
            identifier = str(entry["identifier"])
        try:
            if not isinstance(entry, dict) or "identifier" not in entry:
                raise ValueError("function entry needs an 'identifier'")
            units.append(_unit(entry, language, default_file))
        except (UnmappedConstruct, ValueError, TypeError) as e:
            logger.warning(f"Skipping {identifier}: {e}")
            location = None
            if isinstance(entry, dict):
                try:
                    location = _location(entry.get("location"), default_file)
                except ValueError:
                    location = None
            skipped.append(SkippedUnit(identifier, str(e), location))

    logger.debug(f"Loaded {len(units)} units, skipped {len(skipped)}")
    return units, skipped
