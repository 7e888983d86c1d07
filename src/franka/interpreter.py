"""
Franka interpreter facade.

The narrow interface front ends (CLI, HTTP, tool adapters) consume:

    load document -> resolve function -> build scope -> evaluate -> shape

Each call builds its own Scope and output record, so concurrent calls
never share evaluation state.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from franka.errors import DocumentError
from franka.evaluator import Evaluator
from franka.model import Module, Program
from franka.outputs import shape_result
from franka.scope import Scope
from franka.serialization import document_from_yaml
from franka.values import Value

logger = logging.getLogger(__name__)

Document = Union[Module, Program]


class Interpreter:
    """
    Runs programs and module functions.

    Properties:
        evaluator: The expression evaluator used for every run
    """

    def __init__(self, evaluator: Optional[Evaluator] = None):
        self.evaluator = evaluator or Evaluator()

    def execute(self, program: Program, inputs: Optional[Mapping[str, Value]] = None) -> Any:
        """
        Evaluate a program and shape its result per its output contract.

        Args:
            program: The program to run
            inputs: Values overriding input defaults; every name must be
                a declared input

        Raises:
            FrankaError subclasses; no partial result is ever returned
        """
        if inputs:
            program = program.with_inputs(inputs)
        logger.debug("Executing %s", program.name or "<anonymous program>")
        scope = Scope.from_inputs(program.inputs)
        evaluation = self.evaluator.evaluate(program.logic, scope)
        return shape_result(program.output, evaluation.value, evaluation.outputs)

    def execute_function(
        self,
        module: Module,
        function_name: Optional[str] = None,
        inputs: Optional[Mapping[str, Value]] = None,
    ) -> Any:
        return self.execute(module.to_program(function_name), inputs)

    def load_document(self, path: Union[str, Path]) -> Document:
        return load_document(path)

    def load_program(self, path: Union[str, Path], function_name: Optional[str] = None) -> Program:
        """Load a file and resolve it to a single runnable Program."""
        document = self.load_document(path)
        if isinstance(document, Module):
            return document.to_program(function_name)
        return document

    def execute_file(
        self,
        path: Union[str, Path],
        function_name: Optional[str] = None,
        inputs: Optional[Mapping[str, Value]] = None,
    ) -> Any:
        return self.execute(self.load_program(path, function_name), inputs)


def load_document(path: Union[str, Path]) -> Document:
    """Read a module or program document from disk."""
    path = Path(path)
    if not path.exists():
        raise DocumentError(f"File not found: {path}")
    logger.debug("Loading document %s", path)
    return document_from_yaml(path.read_text(encoding="utf-8"))


def execute(program: Program, inputs: Optional[Mapping[str, Value]] = None) -> Any:
    return Interpreter().execute(program, inputs)


def execute_function(
    module: Module,
    function_name: Optional[str] = None,
    inputs: Optional[Mapping[str, Value]] = None,
) -> Any:
    return Interpreter().execute_function(module, function_name, inputs)


def execute_file(
    path: Union[str, Path],
    function_name: Optional[str] = None,
    inputs: Optional[Mapping[str, Value]] = None,
) -> Any:
    return Interpreter().execute_file(path, function_name, inputs)
