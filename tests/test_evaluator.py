"""
Tests for the Franka evaluator.

Logic trees are written in document form and decoded first, the same way
the interpreter receives them.

These tests verify:
    - Every operation's value semantics
    - Output accumulation through set
    - Let scoping
    - Evaluation errors
"""

import pytest

from franka.errors import EvaluationDepthExceeded, InvalidArguments, UndefinedVariable
from franka.evaluator import Evaluation, Evaluator, evaluate, merge_outputs
from franka.expressions import Let, Literal, Sequence, UnaryExpression, UnaryOperator, VariableReference
from franka.scope import Scope
from franka.serialization import expr_from_data


def run(logic, **bindings) -> Evaluation:
    return evaluate(expr_from_data(logic), Scope(bindings=bindings))


def value_of(logic, **bindings):
    return run(logic, **bindings).value


class TestLeaves:
    """Literals and variables."""

    @pytest.mark.parametrize("literal", ["Hello", 42, 2.5, True, False, None])
    def test_literal(self, literal):
        assert value_of(literal) == literal

    def test_get(self):
        assert value_of({"get": "name"}, name="Ada") == "Ada"

    def test_dollar_shorthand(self):
        assert value_of("$name", name="Ada") == "Ada"

    def test_dollar_in_text_is_literal(self):
        assert value_of("costs $5") == "costs $5"

    def test_undefined_variable(self):
        with pytest.raises(UndefinedVariable) as exc:
            value_of({"get": "missing"})
        assert str(exc.value) == "Undefined variable: missing"

    def test_literal_has_no_outputs(self):
        assert run("x").outputs == {}


class TestStringOperations:
    """concat, uppercase, lowercase, length, substring."""

    def test_concat(self):
        assert value_of({"concat": ["Hello, ", {"get": "name"}, "!"]}, name="Ada") == "Hello, Ada!"

    def test_concat_converts_values(self):
        assert value_of({"concat": [1, True, None, 2.0, False]}) == "1truenull2false"

    def test_concat_values_form(self):
        assert value_of({"concat": {"values": ["a", "b"]}}) == "ab"

    def test_concat_empty(self):
        assert value_of({"concat": []}) == ""

    def test_uppercase_lowercase(self):
        assert value_of({"uppercase": "Hello"}) == "HELLO"
        assert value_of({"lowercase": {"value": "Hello"}}) == "hello"

    def test_case_of_non_string(self):
        assert value_of({"uppercase": True}) == "TRUE"

    def test_length(self):
        assert value_of({"length": "Hello"}) == 5
        assert value_of({"length": 12345}) == 5
        assert value_of({"length": None}) == 4

    def test_length_counts_utf16_code_units(self):
        assert value_of({"length": "\U0001F600"}) == 2
        assert value_of({"length": "a\U0001F600b"}) == 4

    def test_substring_indexes_utf16_code_units(self):
        text = "a\U0001F600b"
        assert value_of({"substring": {"value": text, "start": 1, "end": 3}}) == "\U0001F600"
        assert value_of({"substring": {"value": text, "start": 3}}) == "b"
        assert value_of({"substring": {"value": text, "start": 0, "end": 2}}) == "a\ud83d"

    def test_concat_renders_numbers_like_javascript(self):
        assert value_of({"concat": [1e21, " ", float("inf"), " ", 2.0]}) == "1e+21 Infinity 2"

    def test_substring(self):
        assert value_of({"substring": {"value": "Hello World", "start": 0, "end": 5}}) == "Hello"

    def test_substring_without_end(self):
        assert value_of({"substring": {"value": "Hello World", "start": 6}}) == "World"

    def test_substring_clamps(self):
        assert value_of({"substring": {"value": "Hello", "start": -3, "end": 100}}) == "Hello"

    def test_substring_swaps_reversed_indices(self):
        assert value_of({"substring": {"value": "Hello World", "start": 5, "end": 0}}) == "Hello"

    def test_substring_truncates_fractions(self):
        assert value_of({"substring": {"value": "Hello", "start": 1.9, "end": 3.2}}) == "el"

    def test_substring_nan_and_infinity(self):
        logic = {"substring": {"value": "Hello", "start": {"get": "s"}, "end": {"get": "e"}}}
        assert value_of(logic, s=float("nan"), e=float("inf")) == "Hello"
        assert value_of(logic, s=float("-inf"), e=2) == "He"

    def test_substring_of_number(self):
        assert value_of({"substring": {"value": 12345, "start": 1, "end": 3}}) == "23"

    def test_substring_requires_numeric_index(self):
        with pytest.raises(InvalidArguments) as exc:
            value_of({"substring": {"value": "Hello", "start": "a"}})
        assert exc.value.operation == "substring"

    def test_substring_rejects_boolean_index(self):
        with pytest.raises(InvalidArguments):
            value_of({"substring": {"value": "Hello", "start": 0, "end": True}})


class TestBooleanOperations:
    """and, or, not, equals."""

    def test_and(self):
        assert value_of({"and": [True, True]}) is True
        assert value_of({"and": [True, None]}) is False

    def test_or(self):
        assert value_of({"or": [False, None]}) is False
        assert value_of({"or": [False, 0]}) is True

    def test_not(self):
        assert value_of({"not": False}) is True
        assert value_of({"not": ""}) is False

    def test_and_evaluates_every_operand(self):
        result = run({"and": [False, {"set": {"seen": True}}]})
        assert result.value is False
        assert result.outputs == {"seen": True}

    def test_or_evaluates_every_operand(self):
        result = run({"or": [True, {"set": {"seen": True}}]})
        assert result.value is True
        assert result.outputs == {"seen": True}

    def test_empty_operand_lists(self):
        assert value_of({"and": []}) is True
        assert value_of({"or": []}) is False

    @pytest.mark.parametrize(
        "left, right, expected",
        [
            ("a", "a", True),
            (1, 1.0, True),
            (None, None, True),
            (1, "1", False),
            (True, 1, False),
            (False, None, False),
        ],
    )
    def test_equals(self, left, right, expected):
        assert value_of({"equals": {"left": left, "right": right}}) is expected


class TestConditionals:
    """if/then/else, nested if, chains, sequences."""

    def test_flat_if(self):
        logic = {"if": {"get": "flag"}, "then": "yes", "else": "no"}
        assert value_of(logic, flag=True) == "yes"
        assert value_of(logic, flag=False) == "no"

    def test_zero_and_empty_string_are_truthy(self):
        logic = {"if": {"get": "v"}, "then": "yes", "else": "no"}
        assert value_of(logic, v=0) == "yes"
        assert value_of(logic, v="") == "yes"
        assert value_of(logic, v=None) == "no"

    def test_nested_if(self):
        logic = {"if": {"condition": {"get": "flag"}, "then": "yes", "else": "no"}}
        assert value_of(logic, flag=False) == "no"

    def test_missing_branch_is_null(self):
        assert value_of({"if": False, "then": "yes"}) is None
        assert value_of({"if": True, "else": "no"}) is None

    def test_if_chain_first_match_wins(self):
        logic = [
            {"if": {"equals": {"left": {"get": "n"}, "right": 1}}, "then": "one"},
            {"if": True, "then": "first true"},
            {"if": True, "then": "second true"},
            {"else": "other"},
        ]
        assert value_of(logic, n=1) == "one"
        assert value_of(logic, n=2) == "first true"

    def test_if_chain_else(self):
        logic = [{"if": False, "then": "a"}, {"else": "b"}]
        assert value_of(logic) == "b"

    def test_if_chain_without_match_is_null(self):
        assert value_of([{"if": False, "then": "a"}]) is None

    def test_sequence_value_is_last_item(self):
        logic = {"if": True, "then": [{"set": {"a": 1}}, "done"]}
        result = run(logic)
        assert result.value == "done"
        assert result.outputs == {"a": 1}

    def test_untaken_branch_writes_nothing(self):
        logic = {"if": False, "then": {"set": {"a": 1}}, "else": {"set": {"b": 2}}}
        assert run(logic).outputs == {"b": 2}


class TestLet:
    """Local bindings."""

    def test_let_binds_body(self):
        logic = {"let": {"x": "Ada"}, "in": {"concat": ["Hi ", {"get": "x"}]}}
        assert value_of(logic) == "Hi Ada"

    def test_bindings_see_earlier_bindings(self):
        logic = {"let": {"a": 1, "b": {"concat": [{"get": "a"}, "!"]}}, "in": {"get": "b"}}
        assert value_of(logic) == "1!"

    def test_nested_in_spelling(self):
        logic = {"let": {"x": 2, "in": {"get": "x"}}}
        assert value_of(logic) == 2

    def test_let_shadows_input(self):
        logic = {"let": {"name": "inner"}, "in": {"get": "name"}}
        assert value_of(logic, name="outer") == "inner"

    def test_bindings_do_not_leak(self):
        expr = Sequence(items=(
            Let(bindings=(("x", Literal(1)),), body=VariableReference("x")),
            VariableReference("x"),
        ))
        with pytest.raises(UndefinedVariable):
            evaluate(expr)

    def test_sets_inside_let_are_kept(self):
        logic = {"let": {"x": "v"}, "in": {"set": {"out": {"get": "x"}}}}
        assert run(logic).outputs == {"out": "v"}


class TestSet:
    """Output accumulation."""

    def test_set_value_is_null(self):
        result = run({"set": {"a": 1, "b": "x"}})
        assert result.value is None
        assert result.outputs == {"a": 1, "b": "x"}

    def test_later_write_overrides(self):
        logic = {"if": True, "then": [{"set": {"a": 1, "b": 1}}, {"set": {"b": 2}}]}
        assert run(logic).outputs == {"a": 1, "b": 2}

    def test_set_evaluates_expressions(self):
        logic = {"set": {"greeting": {"concat": ["Hi ", {"get": "n"}]}}}
        assert run(logic, n="Ada").outputs == {"greeting": "Hi Ada"}

    def test_set_inside_condition(self):
        logic = {"if": {"or": [{"set": {"seen": 1}}, True]}, "then": "ok"}
        result = run(logic)
        assert result.value == "ok"
        assert result.outputs == {"seen": 1}


class TestEvaluator:
    """Evaluator configuration and helpers."""

    def test_depth_limit(self):
        expr = Literal(True)
        for _ in range(20):
            expr = UnaryExpression(UnaryOperator.NOT, expr)
        with pytest.raises(EvaluationDepthExceeded) as exc:
            Evaluator(max_depth=5).evaluate(expr, Scope())
        assert exc.value.max_depth == 5

    def test_default_depth_is_enough_for_normal_trees(self):
        expr = Literal(True)
        for _ in range(50):
            expr = UnaryExpression(UnaryOperator.NOT, expr)
        assert Evaluator().evaluate(expr, Scope()).value is True

    def test_default_depth_limit_stops_runaway_trees(self):
        expr = Literal(True)
        for _ in range(1200):
            expr = UnaryExpression(UnaryOperator.NOT, expr)
        with pytest.raises(EvaluationDepthExceeded) as exc:
            evaluate(expr)
        assert exc.value.max_depth == 100

    def test_merge_outputs_does_not_mutate(self):
        earlier = {"a": 1, "b": 1}
        later = {"b": 2}
        merged = merge_outputs(earlier, later)
        assert merged == {"a": 1, "b": 2}
        assert earlier == {"a": 1, "b": 1}

    def test_evaluate_without_scope(self):
        assert evaluate(Literal("x")).value == "x"
