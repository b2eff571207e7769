"""Canonical construct model.

The closed vocabulary of control-flow node kinds every front end maps onto,
the fixed kind -> classification table, and the data structures consumed
and produced by the scorer.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, NamedTuple, Optional, Tuple, Union

from cogscore.errors import UnmappedConstruct


class Classification(str, Enum):
    """How a construct contributes to cognitive complexity."""

    STRUCTURAL = "structural"  # +1 and nesting penalty, nests
    HYBRID = "hybrid"  # +1, no penalty, nests
    FUNDAMENTAL = "fundamental"  # +1 flat
    IGNORED = "ignored"  # +0


class ConstructKind(str, Enum):
    """Closed set of normalized construct kinds."""

    IF = "if"
    ELSE_IF = "else_if"
    ELSE = "else"
    TERNARY = "ternary"
    SWITCH = "switch"
    FOR = "for"
    WHILE = "while"
    DO_WHILE = "do_while"
    CATCH = "catch"
    TRY = "try"
    FINALLY = "finally"
    GOTO = "goto"
    BREAK_LABEL = "break_label"
    CONTINUE_LABEL = "continue_label"
    BREAK_PLAIN = "break_plain"
    CONTINUE_PLAIN = "continue_plain"
    LAMBDA = "lambda"
    NESTED_FUNCTION = "nested_function"
    RECURSIVE_CALL = "recursive_call"
    LOGICAL_RUN = "logical_run"

    @classmethod
    def parse(cls, value: Any, location: Optional["SourceLocation"] = None) -> "ConstructKind":
        """Resolve a kind from its enum value or PascalCase name.

        Accepts ``"else_if"``, ``"ElseIf"`` and ``"ELSE_IF"`` alike.

        Raises:
            UnmappedConstruct: if the value names no kind in the model.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip()
            normalized = "".join(
                "_" + ch.lower() if ch.isupper() and i > 0 and key[i - 1].islower() else ch.lower()
                for i, ch in enumerate(key)
            )
            try:
                return cls(normalized)
            except ValueError:
                pass
        raise UnmappedConstruct(value, location)

    @property
    def classification(self) -> Classification:
        return CLASSIFICATION_TABLE[self].classification

    @property
    def nests(self) -> bool:
        return CLASSIFICATION_TABLE[self].nests

    @property
    def nesting_penalty(self) -> bool:
        return CLASSIFICATION_TABLE[self].nesting_penalty

    @property
    def is_function_scope(self) -> bool:
        return self in FUNCTION_SCOPE_KINDS


class NestedFunctionMode(str, Enum):
    """Where the contents of lambdas and nested functions are scored."""

    SEPARATE = "separate"  # own FunctionUnit, depth reset to 0
    INLINE = "inline"  # into the enclosing function at depth + 1


class KindTraits(NamedTuple):
    classification: Classification
    nests: bool
    nesting_penalty: bool


_STRUCTURAL = KindTraits(Classification.STRUCTURAL, True, True)
_HYBRID = KindTraits(Classification.HYBRID, True, False)
_FUNDAMENTAL = KindTraits(Classification.FUNDAMENTAL, False, False)
_IGNORED = KindTraits(Classification.IGNORED, False, False)
_SCOPE = KindTraits(Classification.IGNORED, True, False)

CLASSIFICATION_TABLE: Dict[ConstructKind, KindTraits] = {
    ConstructKind.IF: _STRUCTURAL,
    ConstructKind.TERNARY: _STRUCTURAL,
    ConstructKind.SWITCH: _STRUCTURAL,
    ConstructKind.FOR: _STRUCTURAL,
    ConstructKind.WHILE: _STRUCTURAL,
    ConstructKind.DO_WHILE: _STRUCTURAL,
    ConstructKind.CATCH: _STRUCTURAL,
    ConstructKind.ELSE_IF: _HYBRID,
    ConstructKind.ELSE: _HYBRID,
    ConstructKind.LOGICAL_RUN: _FUNDAMENTAL,
    ConstructKind.GOTO: _FUNDAMENTAL,
    ConstructKind.BREAK_LABEL: _FUNDAMENTAL,
    ConstructKind.CONTINUE_LABEL: _FUNDAMENTAL,
    ConstructKind.RECURSIVE_CALL: _FUNDAMENTAL,
    ConstructKind.TRY: _IGNORED,
    ConstructKind.FINALLY: _IGNORED,
    ConstructKind.BREAK_PLAIN: _IGNORED,
    ConstructKind.CONTINUE_PLAIN: _IGNORED,
    ConstructKind.LAMBDA: _SCOPE,
    ConstructKind.NESTED_FUNCTION: _SCOPE,
}

FUNCTION_SCOPE_KINDS = frozenset({ConstructKind.LAMBDA, ConstructKind.NESTED_FUNCTION})

# Kinds that add one cyclomatic path each; Switch and LogicalRun add counts instead
CYCLOMATIC_KINDS = frozenset(
    {
        ConstructKind.IF,
        ConstructKind.ELSE_IF,
        ConstructKind.FOR,
        ConstructKind.WHILE,
        ConstructKind.DO_WHILE,
        ConstructKind.CATCH,
        ConstructKind.TERNARY,
    }
)


@dataclass(frozen=True, order=True)
class SourceLocation:
    """Opaque source reference, used only for reporting and ordering."""

    file: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "line": self.line, "column": self.column}


class LogicalOperator(str, Enum):
    AND = "and"
    OR = "or"

    @classmethod
    def parse(cls, value: Any) -> "LogicalOperator":
        if isinstance(value, cls):
            return value
        aliases = {"&&": cls.AND, "and": cls.AND, "||": cls.OR, "or": cls.OR}
        try:
            return aliases[str(value).strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown logical operator: {value!r}") from None


Operand = Union[str, "LogicalExpression"]


@dataclass(frozen=True)
class LogicalExpression:
    """Flat operand/operator sequence of a boolean expression.

    Parenthesized groups (including negated ones) appear as nested
    LogicalExpression operands and form their own run scope.
    """

    operands: Tuple[Operand, ...]
    operators: Tuple[LogicalOperator, ...] = ()
    negated: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "operands", tuple(self.operands))
        object.__setattr__(
            self, "operators", tuple(LogicalOperator.parse(op) for op in self.operators)
        )
        expected = max(len(self.operands) - 1, 0)
        if len(self.operators) != expected:
            raise ValueError(
                f"LogicalExpression with {len(self.operands)} operands needs "
                f"{expected} operators, got {len(self.operators)}"
            )

    @property
    def groups(self) -> Tuple["LogicalExpression", ...]:
        return tuple(op for op in self.operands if isinstance(op, LogicalExpression))


@dataclass(frozen=True)
class ConstructNode:
    """One control-flow-relevant element inside a function body."""

    kind: ConstructKind
    children: Tuple["ConstructNode", ...] = ()
    location: Optional[SourceLocation] = None
    language_hints: Mapping[str, Any] = field(default_factory=dict)
    conditions: Tuple[LogicalExpression, ...] = ()
    operator_count: int = 0  # LogicalRun
    case_count: int = 0  # Switch
    target: Optional[str] = None  # RecursiveCall
    name: Optional[str] = None  # NestedFunction / Lambda

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", tuple(self.children))
        object.__setattr__(self, "conditions", tuple(self.conditions))

    @property
    def classification(self) -> Classification:
        return self.kind.classification

    def hint(self, key: str, default: Any = None) -> Any:
        return self.language_hints.get(key, default)

    def walk(self) -> Iterator["ConstructNode"]:
        """Yield this node and all descendants in preorder."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def with_children(self, children) -> "ConstructNode":
        return replace(self, children=tuple(children))


@dataclass(frozen=True)
class FunctionUnit:
    """The scoring unit: one function with its normalized body."""

    identifier: str
    body: Tuple[ConstructNode, ...] = ()
    location: Optional[SourceLocation] = None
    language: str = "generic"
    language_hints: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "body", tuple(self.body))

    def as_scope(self) -> ConstructNode:
        """Represent the unit root as a function-scope node for rule evaluation."""
        return ConstructNode(
            kind=ConstructKind.NESTED_FUNCTION,
            children=self.body,
            location=self.location,
            language_hints=self.language_hints,
            name=self.identifier,
        )

    def walk(self) -> Iterator[ConstructNode]:
        for node in self.body:
            yield from node.walk()


@dataclass(frozen=True)
class Score:
    """Accumulated (cognitive, cyclomatic) pair for one function."""

    cognitive: int = 0
    cyclomatic: int = 1

    @classmethod
    def empty(cls) -> "Score":
        return cls(cognitive=0, cyclomatic=1)


@dataclass(frozen=True)
class FunctionScore:
    """Scorer output for one function (top-level or split-off nested)."""

    identifier: str
    score: Score
    location: Optional[SourceLocation] = None
    language: str = "generic"
    suppressed: bool = False
    parent: Optional[str] = None

    @property
    def cognitive(self) -> int:
        return self.score.cognitive

    @property
    def cyclomatic(self) -> int:
        return self.score.cyclomatic


@dataclass(frozen=True)
class SkippedUnit:
    """A unit that could not be scored, with the reason."""

    identifier: str
    reason: str
    location: Optional[SourceLocation] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "location": str(self.location) if self.location else None,
            "reason": self.reason,
        }
