"""Compensation rules.

Per-language overrides for idioms the general algorithm would mis-score.
Rules are data: an ordered table of (predicate name, action, kinds,
languages), evaluated generically once per node. First match wins;
anything unmatched is NOOP and the base classification applies.

Built-in predicates:
- else_contains_only_if          : `else { if ... }` with nothing else in the else
- declaration_only_wrapper       : function whose body holds only nested declarations
- returns_sole_nested_function   : decorator-style wrapper returning its single inner function
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, List, NamedTuple, Optional, Tuple

from cogscore.errors import ConfigurationError, UnmappedConstruct
from cogscore.models.construct import ConstructKind, ConstructNode
from cogscore.utils.logging import get_logger

logger = get_logger("scoring.compensation")


class CompensationAction(str, Enum):
    """Override applied to a single node occurrence."""

    SUPPRESS = "suppress"  # treat as Ignored
    RECLASSIFY = "reclassify"  # force Hybrid instead of Structural
    RESET_NESTING = "reset_nesting"  # nested scope keeps the enclosing depth
    NOOP = "noop"


@dataclass(frozen=True)
class CompensationContext:
    """Structural context of the node being evaluated."""

    language: str = "generic"
    parent: Optional[ConstructNode] = None
    is_unit_root: bool = False


Predicate = Callable[[ConstructNode, CompensationContext], bool]


def _else_contains_only_if(node: ConstructNode, context: CompensationContext) -> bool:
    if node.kind is not ConstructKind.ELSE:
        return False
    children = node.children
    if not children or children[0].kind is not ConstructKind.IF:
        return False
    if node.hint("else_contains_only_if") is True:
        return True
    if node.hint("has_other_statements"):
        return False
    # The inner if may carry its own else-if/else chain, nothing else
    return all(
        child.kind in (ConstructKind.ELSE_IF, ConstructKind.ELSE) for child in children[1:]
    )


def _declaration_only_wrapper(node: ConstructNode, context: CompensationContext) -> bool:
    if not node.kind.is_function_scope:
        return False
    if node.hint("namespace_wrapper") is not None:
        return bool(node.hint("namespace_wrapper"))
    children = node.children
    if not children or not all(child.kind.is_function_scope for child in children):
        return False
    # A wrapper returning its only inner function is the decorator shape
    return not (len(children) == 1 and children[0].hint("returned") is True)


def _returns_sole_nested_function(node: ConstructNode, context: CompensationContext) -> bool:
    if node.kind is not ConstructKind.NESTED_FUNCTION or node.hint("returned") is not True:
        return False
    parent = context.parent
    if parent is None or not parent.kind.is_function_scope:
        return False
    return len(parent.children) == 1 and parent.children[0] is node


PREDICATES: Dict[str, Predicate] = {
    "else_contains_only_if": _else_contains_only_if,
    "declaration_only_wrapper": _declaration_only_wrapper,
    "returns_sole_nested_function": _returns_sole_nested_function,
}


@dataclass(frozen=True)
class CompensationRule:
    """One row of the compensation table."""

    name: str
    predicate: str
    action: CompensationAction
    kinds: FrozenSet[ConstructKind] = frozenset()  # empty matches every kind
    languages: Tuple[str, ...] = ("*",)

    def __post_init__(self) -> None:
        if self.predicate not in PREDICATES:
            raise ConfigurationError(
                f"Compensation rule '{self.name}': unknown predicate '{self.predicate}' "
                f"(known: {', '.join(sorted(PREDICATES))})"
            )
        try:
            action = (
                self.action
                if isinstance(self.action, CompensationAction)
                else CompensationAction(str(self.action).strip().lower())
            )
        except ValueError:
            raise ConfigurationError(
                f"Compensation rule '{self.name}': unknown action '{self.action}'"
            ) from None
        try:
            kinds = frozenset(ConstructKind.parse(kind) for kind in self.kinds)
        except UnmappedConstruct as e:
            raise ConfigurationError(f"Compensation rule '{self.name}': {e}") from None
        object.__setattr__(self, "action", action)
        object.__setattr__(self, "kinds", kinds)
        object.__setattr__(
            self, "languages", tuple(lang.lower() for lang in self.languages) or ("*",)
        )

    def matches_language(self, language: str) -> bool:
        return "*" in self.languages or language.lower() in self.languages

    def applies_to(self, node: ConstructNode, context: CompensationContext) -> bool:
        if self.kinds and node.kind not in self.kinds:
            return False
        if not self.matches_language(context.language):
            return False
        return PREDICATES[self.predicate](node, context)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompensationRule":
        if not isinstance(data, dict):
            raise ConfigurationError(f"Compensation rule must be a mapping, got {data!r}")
        missing = [key for key in ("name", "predicate", "action") if key not in data]
        if missing:
            raise ConfigurationError(
                f"Compensation rule is missing required keys: {', '.join(missing)}"
            )
        languages = data.get("languages", ["*"])
        if isinstance(languages, str):
            languages = [languages]
        return cls(
            name=str(data["name"]),
            predicate=str(data["predicate"]),
            action=data["action"],
            kinds=frozenset(data.get("kinds", [])),
            languages=tuple(languages),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "predicate": self.predicate,
            "action": self.action.value,
            "kinds": sorted(kind.value for kind in self.kinds),
            "languages": list(self.languages),
        }


class CompensationDecision(NamedTuple):
    action: CompensationAction
    rule: Optional[CompensationRule] = None


_NO_COMPENSATION = CompensationDecision(CompensationAction.NOOP)


class CompensationRuleSet:
    """Ordered, read-only table of compensation rules."""

    def __init__(self, rules: Iterable[CompensationRule] = ()) -> None:
        self._rules: Tuple[CompensationRule, ...] = tuple(rules)
        names = [rule.name for rule in self._rules]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(
                f"Duplicate compensation rule names: {', '.join(duplicates)}"
            )

    def __iter__(self) -> Iterator[CompensationRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def evaluate(
        self, node: ConstructNode, context: CompensationContext
    ) -> CompensationDecision:
        """Return the action of the first matching rule, or NOOP."""
        for rule in self._rules:
            if rule.applies_to(node, context):
                logger.debug(
                    f"Rule '{rule.name}' -> {rule.action.value} on {node.kind.value}"
                    f"{' at ' + str(node.location) if node.location else ''}"
                )
                return CompensationDecision(rule.action, rule)
        return _NO_COMPENSATION

    @classmethod
    def default(cls) -> "CompensationRuleSet":
        return cls(default_rules())

    @classmethod
    def from_dicts(cls, items: Iterable[Dict[str, Any]]) -> "CompensationRuleSet":
        return cls(CompensationRule.from_dict(item) for item in items)

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [rule.to_dict() for rule in self._rules]


def default_rules() -> List[CompensationRule]:
    """The reference rule set, in evaluation order."""
    return [
        CompensationRule(
            name="else-if-compensation",
            predicate="else_contains_only_if",
            action=CompensationAction.RECLASSIFY,
            kinds=frozenset({ConstructKind.ELSE}),
        ),
        CompensationRule(
            name="namespace-wrapper",
            predicate="declaration_only_wrapper",
            action=CompensationAction.SUPPRESS,
            kinds=frozenset({ConstructKind.NESTED_FUNCTION}),
        ),
        CompensationRule(
            name="decorator-wrapper",
            predicate="returns_sole_nested_function",
            action=CompensationAction.RESET_NESTING,
            kinds=frozenset({ConstructKind.NESTED_FUNCTION}),
            languages=("python",),
        ),
    ]
