"""Tests for the complexity scorer."""

import pytest

from cogscore.errors import UnmappedConstruct
from cogscore.models import (
    ConstructKind,
    ConstructNode,
    FunctionUnit,
    LogicalExpression,
    NestedFunctionMode,
    Score,
)
from cogscore.scoring import (
    BatchScorer,
    CompensationRule,
    CompensationRuleSet,
    ComplexityScorer,
)
from cogscore.utils.config import ComplexityConfig

K = ConstructKind


def node(kind, *children, **kwargs):
    return ConstructNode(kind=kind, children=children, **kwargs)


def unit(*body, identifier="f", language="generic"):
    return FunctionUnit(identifier=identifier, body=body, language=language)


def score_of(function_unit, **kwargs):
    return ComplexityScorer(**kwargs).score_unit(function_unit)[0].score


def nested_ifs(depth):
    current = node(K.IF)
    for _ in range(depth - 1):
        current = node(K.IF, current)
    return current


class TestBasicScoring:
    """Tests for the base classification rules."""

    def test_empty_body(self):
        assert score_of(unit()) == Score(cognitive=0, cyclomatic=1)

    @pytest.mark.parametrize("depth", [1, 2, 3, 4, 6])
    def test_nested_ifs(self, depth):
        """Test d nested ifs score d(d+1)/2."""
        score = score_of(unit(nested_ifs(depth)))

        assert score.cognitive == depth * (depth + 1) // 2
        assert score.cyclomatic == depth + 1

    def test_sequential_ifs_do_not_nest(self):
        score = score_of(unit(node(K.IF), node(K.IF), node(K.IF)))
        assert score == Score(3, 4)

    def test_reference_worked_example(self):
        """if(a){ for(i){ while(b){} } } catch(e){ if(c){} } scores 9."""
        body = node(
            K.TRY,
            node(K.IF, node(K.FOR, node(K.WHILE))),
            node(K.CATCH, node(K.IF)),
        )
        score = score_of(unit(body))

        assert score.cognitive == 9
        assert score.cyclomatic == 6

    def test_hybrid_has_no_nesting_penalty(self):
        body = node(K.FOR, node(K.IF), node(K.ELSE_IF), node(K.ELSE))
        # for 1, if 1+1, else-if 1, else 1
        assert score_of(unit(body)).cognitive == 5
        assert score_of(unit(body)).cyclomatic == 4

    def test_hybrid_still_nests_children(self):
        body = node(K.IF, node(K.IF)), node(K.ELSE, node(K.FOR))
        # if 1, inner if 2, else 1, for under else 2
        assert score_of(unit(*body)).cognitive == 6

    def test_transparent_constructs(self):
        body = node(
            K.TRY,
            node(K.IF),
            node(K.FINALLY, node(K.IF)),
        )
        assert score_of(unit(body)) == Score(2, 3)

    def test_fundamental_constructs(self):
        body = node(
            K.FOR,
            node(K.BREAK_LABEL),
            node(K.CONTINUE_LABEL),
            node(K.GOTO),
            node(K.BREAK_PLAIN),
            node(K.CONTINUE_PLAIN),
        )
        assert score_of(unit(body)) == Score(4, 2)

    def test_switch_counts_cases_for_cyclomatic_only(self):
        body = node(K.SWITCH, node(K.IF), case_count=3)
        score = score_of(unit(body))

        assert score.cognitive == 1 + 2
        assert score.cyclomatic == 1 + 3 + 1

    def test_ternary_and_do_while(self):
        body = node(K.DO_WHILE, node(K.TERNARY))
        assert score_of(unit(body)) == Score(3, 3)


class TestLogicalRuns:
    """Tests for boolean operator scoring."""

    def test_same_operator_run(self):
        """a && b && c is one run and two decision points."""
        condition = LogicalExpression(("a", "b", "c"), ("&&", "&&"))
        score = score_of(unit(node(K.IF, conditions=[condition])))

        assert score.cognitive == 1 + 1
        assert score.cyclomatic == 1 + 1 + 2

    def test_mixed_operator_runs(self):
        """a && b || c is two runs and two decision points."""
        condition = LogicalExpression(("a", "b", "c"), ("&&", "||"))
        score = score_of(unit(node(K.IF, conditions=[condition])))

        assert score.cognitive == 1 + 2
        assert score.cyclomatic == 1 + 1 + 2

    def test_runs_ignore_nesting_depth(self):
        condition = LogicalExpression(("a", "b"), ("||",))
        body = node(K.FOR, node(K.WHILE, conditions=[condition]))
        # for 1, while 2, run 1
        assert score_of(unit(body)).cognitive == 4

    def test_explicit_logical_run_nodes(self):
        body = node(K.LOGICAL_RUN, operator_count=3), node(K.LOGICAL_RUN, operator_count=1)
        assert score_of(unit(*body)) == Score(2, 5)


class TestRecursion:
    """Tests for recursion-cycle scoring."""

    def test_self_recursion_counts_once(self):
        body = [node(K.RECURSIVE_CALL, target="f") for _ in range(3)]
        assert score_of(unit(*body)) == Score(1, 1)

    def test_mutual_recursion_in_batch(self):
        a = unit(node(K.RECURSIVE_CALL, target="b"), node(K.RECURSIVE_CALL, target="b"), identifier="a")
        b = unit(node(K.RECURSIVE_CALL, target="a"), identifier="b")
        c = unit(node(K.RECURSIVE_CALL, target="a"), identifier="c")

        result = BatchScorer().score([a, b, c])
        scores = result.by_identifier()

        assert scores["a"].cognitive == 1
        assert scores["b"].cognitive == 1
        assert scores["c"].cognitive == 0
        assert all(record.cyclomatic == 1 for record in result.scores)

    def test_single_unit_does_not_see_other_units(self):
        a = unit(node(K.RECURSIVE_CALL, target="b"), identifier="a")
        assert score_of(a).cognitive == 0

    def test_unresolved_call_is_non_recursive(self):
        result = BatchScorer().score([unit(node(K.RECURSIVE_CALL, target="missing"))])

        assert result.scores[0].cognitive == 0
        assert [d.target for d in result.diagnostics] == ["missing"]

    def test_recursive_nested_function_separate(self):
        helper = node(K.NESTED_FUNCTION, node(K.RECURSIVE_CALL, target="f.helper"), name="helper")
        records = ComplexityScorer().score_unit(unit(node(K.IF), helper))

        assert [(r.identifier, r.cognitive) for r in records] == [("f", 1), ("f.helper", 1)]
        assert records[1].parent == "f"


class TestCompensation:
    """Tests for compensation rules applied by the scorer."""

    def test_else_only_if_matches_native_chain(self):
        native = unit(node(K.IF), node(K.ELSE_IF, node(K.IF)))
        compensated = unit(node(K.IF), node(K.ELSE, node(K.IF, node(K.IF))))

        assert score_of(compensated) == score_of(native)
        assert score_of(native) == Score(4, 4)

    def test_else_only_if_matches_native_chain_when_nested(self):
        native = unit(node(K.FOR, node(K.IF), node(K.ELSE_IF, node(K.IF)), node(K.ELSE)))
        compensated = unit(
            node(K.FOR, node(K.IF), node(K.ELSE, node(K.IF, node(K.IF)), node(K.ELSE)))
        )
        assert score_of(compensated) == score_of(native)

    def test_else_with_other_statements_is_not_compensated(self):
        body = node(K.IF), node(
            K.ELSE, node(K.IF), language_hints={"has_other_statements": True}
        )
        # if 1, else 1, nested if 2
        assert score_of(unit(*body)).cognitive == 4

    def test_without_rules_else_if_nests(self):
        body = node(K.IF), node(K.ELSE, node(K.IF))
        assert score_of(unit(*body), rules=CompensationRuleSet()).cognitive == 4

    def test_suppress_rule_on_construct(self):
        rules = CompensationRuleSet(
            [CompensationRule("drop-else", "else_contains_only_if", "suppress", kinds=frozenset({K.ELSE}))]
        )
        body = node(K.IF), node(K.ELSE, node(K.IF))
        # else is ignored, its if is structural at depth 0
        assert score_of(unit(*body), rules=rules) == Score(2, 3)

    def test_namespace_wrapper_scores_zero(self):
        body = (
            node(K.NESTED_FUNCTION, node(K.IF, node(K.IF)), name="a"),
            node(K.NESTED_FUNCTION, node(K.FOR), name="b"),
        )
        records = ComplexityScorer().score_unit(unit(*body, identifier="ns"))
        by_id = {r.identifier: r for r in records}

        assert by_id["ns"].cognitive == 0
        assert by_id["ns"].suppressed
        assert by_id["ns.a"].cognitive == 3
        assert by_id["ns.b"].cognitive == 1
        assert records[0].identifier == "ns"

    def test_nested_namespace_wrapper_contributes_nothing_inline(self):
        wrapper = node(
            K.NESTED_FUNCTION,
            node(K.NESTED_FUNCTION, node(K.IF), node(K.IF), name="inner"),
            name="ns",
        )
        records = ComplexityScorer(nested_functions=NestedFunctionMode.INLINE).score_unit(
            unit(node(K.IF), wrapper)
        )
        by_id = {r.identifier: r for r in records}

        assert by_id["f"].score == Score(1, 2)
        assert by_id["f.ns"].suppressed
        assert by_id["f.ns.inner"].score == Score(2, 3)


class TestNestedFunctions:
    """Tests for lambda and nested function policies."""

    def test_separate_mode_resets_depth(self):
        body = node(K.IF, node(K.LAMBDA, node(K.IF)))
        records = ComplexityScorer().score_unit(unit(body))

        assert [(r.identifier, r.score) for r in records] == [
            ("f", Score(1, 2)),
            ("f.<lambda#1>", Score(1, 2)),
        ]

    def test_inline_mode_nests_contents(self):
        body = node(K.IF, node(K.LAMBDA, node(K.IF)))
        records = ComplexityScorer(nested_functions=NestedFunctionMode.INLINE).score_unit(unit(body))

        assert len(records) == 1
        # if 1, lambda pushes depth to 2, inner if 3
        assert records[0].score == Score(4, 3)

    def test_inline_recursion_credits_enclosing_record(self):
        helper = node(K.NESTED_FUNCTION, node(K.RECURSIVE_CALL, target="f.helper"), name="helper")
        records = ComplexityScorer(nested_functions="inline").score_unit(unit(node(K.IF), helper))

        assert len(records) == 1
        assert records[0].cognitive == 2

    def test_decorator_wrapper_resets_nesting_inline(self):
        wrapper = node(
            K.NESTED_FUNCTION,
            node(K.IF, node(K.IF)),
            name="wrapper",
            language_hints={"returned": True},
        )
        inline = ComplexityScorer(nested_functions=NestedFunctionMode.INLINE)

        python = inline.score_unit(unit(wrapper, identifier="deco", language="python"))
        generic = inline.score_unit(unit(wrapper, identifier="deco", language="generic"))

        assert python[0].cognitive == 3
        assert generic[0].cognitive == 5

    def test_decorator_wrapper_separate(self):
        wrapper = node(
            K.NESTED_FUNCTION,
            node(K.IF, node(K.IF)),
            name="wrapper",
            language_hints={"returned": True},
        )
        records = ComplexityScorer().score_unit(unit(wrapper, identifier="deco", language="python"))
        by_id = {r.identifier: r for r in records}

        assert by_id["deco"].cognitive == 0
        assert not by_id["deco"].suppressed
        assert by_id["deco.wrapper"].cognitive == 3


class TestPurity:
    """Tests for idempotence and error isolation."""

    def test_idempotent(self):
        body = node(
            K.WHILE,
            node(K.IF, conditions=[LogicalExpression(("a", "b", "c"), ("&&", "||"))]),
            node(K.LAMBDA, node(K.FOR)),
        )
        scorer = ComplexityScorer()
        assert scorer.score_unit(unit(body)) == scorer.score_unit(unit(body))

    def test_string_kinds_are_normalized(self):
        body = ConstructNode(kind="If", children=(ConstructNode(kind="ElseIf"),))
        assert score_of(unit(body)) == Score(2, 3)

    def test_unmapped_construct_raises_for_single_unit(self):
        with pytest.raises(UnmappedConstruct):
            score_of(unit(ConstructNode(kind="Unless")))

    def test_unmapped_construct_is_isolated_in_batch(self):
        good = unit(node(K.IF), identifier="good")
        bad = unit(node(K.FOR, ConstructNode(kind="Unless")), identifier="bad")

        result = BatchScorer().score([bad, good])

        assert [r.identifier for r in result.scores] == ["good"]
        assert [s.identifier for s in result.skipped] == ["bad"]
        assert "Unless" in result.skipped[0].reason


class TestBatchScorer:
    """Tests for batch scoring, parallelism and cancellation."""

    def _units(self, count):
        return [unit(nested_ifs(i % 4 + 1), identifier=f"f{i}") for i in range(count)]

    def test_parallel_matches_sequential(self):
        units = self._units(20)

        sequential = BatchScorer(ComplexityConfig(max_workers=1)).score(units)
        parallel = BatchScorer(ComplexityConfig(max_workers=4)).score(units)

        assert parallel.scores == sequential.scores
        assert [r.identifier for r in parallel.scores] == [f"f{i}" for i in range(20)]

    def test_cancel_before_start_skips_everything(self):
        scorer = BatchScorer()
        scorer.cancel()

        result = scorer.score(self._units(3))

        assert scorer.cancelled
        assert result.scores == []
        assert [s.reason for s in result.skipped] == ["cancelled"] * 3

    def test_invalid_config_rejected_before_scoring(self):
        from cogscore.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            BatchScorer(ComplexityConfig(max_workers=0))

    def test_config_selects_nested_mode(self):
        config = ComplexityConfig(nested_functions="inline")
        result = BatchScorer(config).score([unit(node(K.IF, node(K.LAMBDA, node(K.IF))))])

        assert len(result.scores) == 1
        assert result.scores[0].cognitive == 4

    def test_unresolved_call_is_a_diagnostic(self):
        caller = unit(node(K.RECURSIVE_CALL, target="missing"), identifier="caller")

        result = BatchScorer().score([caller])

        assert result.scores[0].cognitive == 0
        assert [(d.caller, d.target) for d in result.diagnostics] == [("caller", "missing")]

    def test_call_without_target_is_a_diagnostic(self):
        fact = unit(node(K.IF), node(K.RECURSIVE_CALL), identifier="fact")

        result = BatchScorer().score([fact])

        assert result.scores[0].score == Score(1, 2)
        assert [d.target for d in result.diagnostics] == ["<missing>"]

    def test_malformed_payload_is_isolated(self):
        good = unit(node(K.IF), identifier="good")
        bad_target = unit(node(K.RECURSIVE_CALL, target=5), identifier="bad_target")
        bad_hints = FunctionUnit(identifier="bad_hints", language_hints=["x"])

        result = BatchScorer().score([bad_target, good, bad_hints])

        assert [r.identifier for r in result.scores] == ["good"]
        assert [s.identifier for s in result.skipped] == ["bad_target", "bad_hints"]
