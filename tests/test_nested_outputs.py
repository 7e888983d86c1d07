"""
Tests for setting named outputs at any depth of the logic tree.

Outputs set on the path that was actually taken are merged in traversal
order; deeper writes override shallower ones.
"""

import pytest

from franka.interpreter import Interpreter
from franka.serialization import program_from_data


def two_level_program(cond1: bool, cond2: bool) -> dict:
    return {
        "program": {"name": "Test"},
        "input": {
            "cond1": {"type": "boolean", "default": cond1},
            "cond2": {"type": "boolean", "default": cond2},
        },
        "output": {
            "foo": {"type": "number"},
            "bar": {"type": "string"},
        },
        "logic": {
            "if": {"get": "cond1"},
            "then": [
                {"set": {"foo": 1}},
                {
                    "if": {"get": "cond2"},
                    "then": {"set": {"bar": "A"}},
                    "else": {"set": {"bar": "B"}},
                },
            ],
            "else": {"set": {"foo": 2, "bar": "C"}},
        },
    }


class TestNonLeafOutputs:
    """Outputs set before a nested conditional."""

    @pytest.mark.parametrize(
        "cond1, cond2, expected",
        [
            (True, True, {"foo": 1, "bar": "A"}),
            (True, False, {"foo": 1, "bar": "B"}),
            (False, True, {"foo": 2, "bar": "C"}),
        ],
    )
    def test_two_levels(self, cond1, cond2, expected):
        program = program_from_data(two_level_program(cond1, cond2))
        assert Interpreter().execute(program) == expected

    def test_inputs_override_defaults(self):
        program = program_from_data(two_level_program(True, True))
        assert Interpreter().execute(program, {"cond2": False}) == {"foo": 1, "bar": "B"}

    def test_multiple_levels(self):
        program = program_from_data({
            "program": {"name": "Test"},
            "input": {
                "cond1": {"type": "boolean", "default": True},
                "cond2": {"type": "boolean", "default": True},
                "cond3": {"type": "boolean", "default": False},
            },
            "output": {
                "a": {"type": "number"},
                "b": {"type": "number"},
                "c": {"type": "number"},
            },
            "logic": {
                "if": {"get": "cond1"},
                "then": [
                    {"set": {"a": 1}},
                    {
                        "if": {"get": "cond2"},
                        "then": [
                            {"set": {"b": 2}},
                            {
                                "if": {"get": "cond3"},
                                "then": {"set": {"c": 3}},
                                "else": {"set": {"c": 4}},
                            },
                        ],
                        "else": {"set": {"b": 5, "c": 6}},
                    },
                ],
                "else": {"set": {"a": 7, "b": 8, "c": 9}},
            },
        })
        assert Interpreter().execute(program) == {"a": 1, "b": 2, "c": 4}

    def test_deeper_write_overrides(self):
        program = program_from_data({
            "program": {"name": "Test"},
            "input": {
                "cond1": {"type": "boolean", "default": True},
                "cond2": {"type": "boolean", "default": True},
            },
            "output": {
                "foo": {"type": "number"},
                "bar": {"type": "string"},
            },
            "logic": {
                "if": {"get": "cond1"},
                "then": [
                    {"set": {"foo": 1, "bar": "initial"}},
                    {
                        "if": {"get": "cond2"},
                        "then": {"set": {"bar": "overridden"}},
                        "else": {"set": {"bar": "B"}},
                    },
                ],
                "else": {"set": {"foo": 2, "bar": "C"}},
            },
        })
        assert Interpreter().execute(program) == {"foo": 1, "bar": "overridden"}


class TestIfChainOutputs:
    """Outputs set inside if chains."""

    def grade_program(self, score, bonus) -> dict:
        return {
            "program": {"name": "Test"},
            "input": {
                "score": {"type": "number", "default": score},
                "bonus": {"type": "boolean", "default": bonus},
            },
            "output": {
                "grade": {"type": "string"},
                "passed": {"type": "boolean"},
                "message": {"type": "string"},
            },
            "logic": [
                {
                    "if": {"equals": {"left": {"get": "score"}, "right": 100}},
                    "then": {"set": {"grade": "A+", "passed": True, "message": "Perfect!"}},
                },
                {
                    "if": {"equals": {"left": {"get": "score"}, "right": 85}},
                    "then": [
                        {"set": {"grade": "B+", "passed": True}},
                        {
                            "if": {"get": "bonus"},
                            "then": {"set": {"message": "Great with bonus!"}},
                            "else": {"set": {"message": "Great job!"}},
                        },
                    ],
                },
                {"else": {"set": {"grade": "F", "passed": False, "message": "Keep trying!"}}},
            ],
        }

    def test_chain_with_nested_conditional(self):
        program = program_from_data(self.grade_program(85, True))
        assert Interpreter().execute(program) == {
            "grade": "B+",
            "passed": True,
            "message": "Great with bonus!",
        }

    def test_chain_first_clause(self):
        program = program_from_data(self.grade_program(100, False))
        assert Interpreter().execute(program) == {
            "grade": "A+",
            "passed": True,
            "message": "Perfect!",
        }

    def test_chain_else(self):
        program = program_from_data(self.grade_program(12, False))
        result = Interpreter().execute(program)
        assert result["grade"] == "F"
        assert result["passed"] is False

    def test_record_follows_declaration_order(self):
        program = program_from_data(self.grade_program(85, False))
        result = Interpreter().execute(program)
        assert list(result) == ["grade", "passed", "message"]
        assert result["message"] == "Great job!"


class TestRepeatedRuns:
    """One interpreter gives the same record for the same inputs, every time."""

    def test_same_inputs_same_record(self):
        interpreter = Interpreter()
        program = program_from_data(two_level_program(True, True))
        first = interpreter.execute(program)
        second = interpreter.execute(program)
        assert first == second == {"foo": 1, "bar": "A"}
        assert first is not second

    def test_alternating_inputs_leave_nothing_behind(self):
        interpreter = Interpreter()
        program = program_from_data(two_level_program(True, True))
        runs = [
            ({"cond1": True, "cond2": True}, {"foo": 1, "bar": "A"}),
            ({"cond1": False}, {"foo": 2, "bar": "C"}),
            ({"cond1": True, "cond2": False}, {"foo": 1, "bar": "B"}),
        ]
        for _ in range(2):
            for inputs, expected in runs:
                assert interpreter.execute(program, inputs) == expected

    def test_returned_record_is_not_shared(self):
        interpreter = Interpreter()
        program = program_from_data(two_level_program(True, True))
        interpreter.execute(program)["foo"] = 99
        assert interpreter.execute(program) == {"foo": 1, "bar": "A"}
