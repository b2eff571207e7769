"""Tests for the canonical construct model."""

import pytest

from cogscore.errors import UnmappedConstruct
from cogscore.models import (
    CLASSIFICATION_TABLE,
    Classification,
    ConstructKind,
    ConstructNode,
    FunctionScore,
    FunctionUnit,
    LogicalExpression,
    LogicalOperator,
    Score,
    SkippedUnit,
    SourceLocation,
)


class TestConstructKind:
    """Tests for the closed kind set and its classification table."""

    def test_every_kind_is_classified(self):
        """Test the table covers the whole closed set."""
        assert set(CLASSIFICATION_TABLE) == set(ConstructKind)

    @pytest.mark.parametrize(
        "kind",
        [
            ConstructKind.IF,
            ConstructKind.TERNARY,
            ConstructKind.SWITCH,
            ConstructKind.FOR,
            ConstructKind.WHILE,
            ConstructKind.DO_WHILE,
            ConstructKind.CATCH,
        ],
    )
    def test_structural_kinds(self, kind):
        assert kind.classification is Classification.STRUCTURAL
        assert kind.nests
        assert kind.nesting_penalty

    def test_hybrid_kinds(self):
        for kind in (ConstructKind.ELSE_IF, ConstructKind.ELSE):
            assert kind.classification is Classification.HYBRID
            assert kind.nests
            assert not kind.nesting_penalty

    def test_fundamental_kinds_do_not_nest(self):
        for kind in (
            ConstructKind.LOGICAL_RUN,
            ConstructKind.GOTO,
            ConstructKind.BREAK_LABEL,
            ConstructKind.CONTINUE_LABEL,
            ConstructKind.RECURSIVE_CALL,
        ):
            assert kind.classification is Classification.FUNDAMENTAL
            assert not kind.nests

    def test_transparent_kinds(self):
        for kind in (
            ConstructKind.TRY,
            ConstructKind.FINALLY,
            ConstructKind.BREAK_PLAIN,
            ConstructKind.CONTINUE_PLAIN,
        ):
            assert kind.classification is Classification.IGNORED
            assert not kind.nests

    def test_function_scopes_nest_their_contents(self):
        for kind in (ConstructKind.LAMBDA, ConstructKind.NESTED_FUNCTION):
            assert kind.classification is Classification.IGNORED
            assert kind.nests
            assert kind.is_function_scope

    @pytest.mark.parametrize("value", ["else_if", "ElseIf", "ELSE_IF", " elseIf "])
    def test_parse_accepts_common_spellings(self, value):
        assert ConstructKind.parse(value) is ConstructKind.ELSE_IF

    def test_parse_unknown_kind(self):
        """Test unknown kinds raise UnmappedConstruct with the location."""
        location = SourceLocation("a.js", 3, 4)
        with pytest.raises(UnmappedConstruct) as exc_info:
            ConstructKind.parse("WithStatement", location)

        assert exc_info.value.kind == "WithStatement"
        assert exc_info.value.location == location
        assert "a.js:3:4" in str(exc_info.value)

    def test_parse_non_string(self):
        with pytest.raises(UnmappedConstruct):
            ConstructKind.parse(42)


class TestLogicalExpression:
    """Tests for LogicalExpression validation."""

    def test_operator_aliases(self):
        expr = LogicalExpression(("a", "b", "c"), ("&&", "or"))
        assert expr.operators == (LogicalOperator.AND, LogicalOperator.OR)

    def test_operator_count_must_match(self):
        with pytest.raises(ValueError, match="needs 2 operators"):
            LogicalExpression(("a", "b", "c"), ("&&",))

    def test_unknown_operator(self):
        with pytest.raises(ValueError, match="Unknown logical operator"):
            LogicalExpression(("a", "b"), ("^",))

    def test_groups(self):
        inner = LogicalExpression(("b", "c"), ("||",))
        expr = LogicalExpression(("a", inner), ("&&",))
        assert expr.groups == (inner,)


class TestConstructNode:
    """Tests for ConstructNode helpers."""

    def test_walk_is_preorder(self):
        leaf = ConstructNode(ConstructKind.WHILE)
        loop = ConstructNode(ConstructKind.FOR, children=[leaf])
        other = ConstructNode(ConstructKind.CATCH)
        root = ConstructNode(ConstructKind.IF, children=[loop, other])

        assert [n.kind for n in root.walk()] == [
            ConstructKind.IF,
            ConstructKind.FOR,
            ConstructKind.WHILE,
            ConstructKind.CATCH,
        ]

    def test_children_become_tuple(self):
        node = ConstructNode(ConstructKind.IF, children=[ConstructNode(ConstructKind.FOR)])
        assert isinstance(node.children, tuple)

    def test_hint_default(self):
        node = ConstructNode(ConstructKind.ELSE, language_hints={"has_other_statements": True})
        assert node.hint("has_other_statements") is True
        assert node.hint("missing", "x") == "x"


class TestFunctionUnit:
    """Tests for FunctionUnit."""

    def test_as_scope(self):
        location = SourceLocation("m.py", 10)
        body = (ConstructNode(ConstructKind.IF),)
        unit = FunctionUnit("m.f", body, location, language="python")

        scope = unit.as_scope()

        assert scope.kind is ConstructKind.NESTED_FUNCTION
        assert scope.children == body
        assert scope.location == location
        assert scope.name == "m.f"

    def test_walk_covers_whole_body(self):
        unit = FunctionUnit(
            "f",
            [
                ConstructNode(ConstructKind.IF, children=[ConstructNode(ConstructKind.FOR)]),
                ConstructNode(ConstructKind.WHILE),
            ],
        )
        assert len(list(unit.walk())) == 3


class TestScoreRecords:
    """Tests for score value objects."""

    def test_empty_score(self):
        assert Score.empty() == Score(cognitive=0, cyclomatic=1)

    def test_function_score_properties(self):
        record = FunctionScore("f", Score(3, 4))
        assert record.cognitive == 3
        assert record.cyclomatic == 4

    def test_location_ordering(self):
        locations = [
            SourceLocation("b.py", 1),
            SourceLocation("a.py", 20),
            SourceLocation("a.py", 3),
        ]
        assert sorted(locations) == [
            SourceLocation("a.py", 3),
            SourceLocation("a.py", 20),
            SourceLocation("b.py", 1),
        ]

    def test_skipped_to_dict(self):
        skipped = SkippedUnit("f", "bad kind", SourceLocation("x.c", 2, 1))
        assert skipped.to_dict() == {"identifier": "f", "location": "x.c:2:1", "reason": "bad kind"}
