"""
Core Franka Model Objects

Defines the data structures a loaded document is decoded into:
    - InputDefinition (a declared input with optional default)
    - SingleOutput / NamedOutputs (output contracts)
    - FunctionDefinition (inputs + output + logic)
    - Module (named collection of functions)
    - Program (a directly evaluable unit)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about YAML or file paths
        - Represent structure, not behavior
        - Are built by franka.serialization and consumed by franka.interpreter
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Union

from franka.errors import FunctionNotFound, UndeclaredTestInput
from franka.expressions import Expression
from franka.values import Value


@dataclass(frozen=True)
class InputDefinition:
    """
    Declares a function input.

    Properties:
        type: "string", "number" or "boolean"
        default: Value bound when the caller supplies none
        has_default: Distinguishes "no default" from "default: null"
    """

    type: str
    default: Value = None
    has_default: bool = False

    def with_default(self, value: Value) -> "InputDefinition":
        return replace(self, default=value, has_default=True)


@dataclass(frozen=True)
class SingleOutput:
    """
    A function returns one value of the declared type.

    Any set operations in its logic are ignored.
    """

    type: str


@dataclass(frozen=True)
class NamedOutputs:
    """
    A function returns a record assembled by set operations.

    Properties:
        fields: field name -> declared type, in declaration order
    """

    fields: Dict[str, str] = field(default_factory=dict)


OutputDeclaration = Union[SingleOutput, NamedOutputs]


@dataclass
class FunctionDefinition:
    """
    A function inside a module.

    Properties:
        logic: The decoded expression tree
        description: Optional human-readable text
        inputs: input name -> InputDefinition, in declaration order
        output: None means the raw evaluation result is returned unshaped
    """

    logic: Expression
    description: Optional[str] = None
    inputs: Dict[str, InputDefinition] = field(default_factory=dict)
    output: Optional[OutputDeclaration] = None


@dataclass
class Program:
    """
    A directly evaluable unit: a standalone program document, or one
    module function resolved together with its module.
    """

    name: str
    logic: Expression
    description: Optional[str] = None
    inputs: Dict[str, InputDefinition] = field(default_factory=dict)
    output: Optional[OutputDeclaration] = None

    def with_inputs(self, values: Mapping[str, Value]) -> "Program":
        """
        Return a copy whose input defaults are overridden by values.

        Raises:
            UndeclaredTestInput: a name in values is not a declared input
        """
        inputs = dict(self.inputs)
        for name, value in values.items():
            if name not in inputs:
                raise UndeclaredTestInput(name)
            inputs[name] = inputs[name].with_default(value)
        return replace(self, inputs=inputs)


@dataclass
class Module:
    """
    Root container of a module document.

    Properties:
        name: Module identifier
        description: Optional human-readable text
        functions: function name -> FunctionDefinition, in declaration order
    """

    name: str
    description: Optional[str] = None
    functions: Dict[str, FunctionDefinition] = field(default_factory=dict)

    def function_names(self) -> List[str]:
        return list(self.functions.keys())

    def get_function(self, name: Optional[str] = None) -> FunctionDefinition:
        """
        Resolve a function by name.

        Args:
            name: Function name; None selects the first declared function

        Raises:
            FunctionNotFound: no such function, or the module is empty
        """
        if name is None:
            if not self.functions:
                raise FunctionNotFound(None, [])
            return next(iter(self.functions.values()))
        if name not in self.functions:
            raise FunctionNotFound(name, self.function_names())
        return self.functions[name]

    def resolve_name(self, name: Optional[str] = None) -> str:
        """The name get_function(name) would resolve to."""
        self.get_function(name)
        return name if name is not None else self.function_names()[0]

    def to_program(self, name: Optional[str] = None) -> Program:
        """Turn one function plus this module into a Program."""
        function_name = self.resolve_name(name)
        function = self.functions[function_name]
        return Program(
            name=f"{self.name}.{function_name}",
            logic=function.logic,
            description=function.description,
            inputs=dict(function.inputs),
            output=function.output,
        )
