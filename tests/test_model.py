"""
Tests for the Franka model objects: inputs, functions, modules, programs.
"""

import pytest

from franka.errors import FunctionNotFound, UndeclaredTestInput
from franka.expressions import Literal, VariableReference
from franka.model import (
    FunctionDefinition,
    InputDefinition,
    Module,
    NamedOutputs,
    Program,
    SingleOutput,
)


def build_module() -> Module:
    return Module(
        name="greetings",
        description="Greeting functions",
        functions={
            "hello": FunctionDefinition(
                logic=VariableReference("name"),
                inputs={"name": InputDefinition(type="string", default="World", has_default=True)},
                output=SingleOutput("string"),
            ),
            "bye": FunctionDefinition(logic=Literal("Bye"), description="Farewell"),
        },
    )


class TestInputDefinition:
    """Declared inputs."""

    def test_default_absent(self):
        definition = InputDefinition(type="number")
        assert definition.has_default is False

    def test_null_default_is_a_default(self):
        definition = InputDefinition(type="string", default=None, has_default=True)
        assert definition.has_default is True

    def test_with_default_copies(self):
        definition = InputDefinition(type="number")
        updated = definition.with_default(3)
        assert updated.default == 3
        assert updated.has_default is True
        assert definition.has_default is False


class TestModule:
    """Function resolution."""

    def test_function_names_in_order(self):
        assert build_module().function_names() == ["hello", "bye"]

    def test_get_function_by_name(self):
        assert build_module().get_function("bye").description == "Farewell"

    def test_default_is_first_function(self):
        module = build_module()
        assert module.get_function() is module.functions["hello"]
        assert module.resolve_name() == "hello"

    def test_unknown_function(self):
        with pytest.raises(FunctionNotFound) as exc:
            build_module().get_function("missing")
        assert exc.value.name == "missing"
        assert exc.value.available == ["hello", "bye"]
        assert "hello, bye" in str(exc.value)

    def test_empty_module(self):
        with pytest.raises(FunctionNotFound):
            Module(name="empty").get_function()

    def test_to_program(self):
        program = build_module().to_program("hello")
        assert program.name == "greetings.hello"
        assert program.output == SingleOutput("string")
        assert program.inputs["name"].default == "World"


class TestProgram:
    """Programs and input overrides."""

    def test_with_inputs_overrides_defaults(self):
        program = build_module().to_program()
        updated = program.with_inputs({"name": "Ada"})
        assert updated.inputs["name"].default == "Ada"
        assert program.inputs["name"].default == "World"

    def test_with_inputs_supplies_missing_default(self):
        program = Program(
            name="p",
            logic=VariableReference("n"),
            inputs={"n": InputDefinition(type="number")},
            output=NamedOutputs({"x": "number"}),
        )
        assert program.with_inputs({"n": 1}).inputs["n"].has_default is True

    def test_with_inputs_rejects_undeclared(self):
        with pytest.raises(UndeclaredTestInput) as exc:
            build_module().to_program().with_inputs({"nme": "typo"})
        assert str(exc.value) == 'Input "nme" is not declared in the program'
