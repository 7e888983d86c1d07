"""
Spec runner: executes the test cases declared next to a Franka program.

A program `greet.yaml` is tested by `greet.spec.yaml` (or `.spec.yml`).
Two spec layouts exist:

    # one list of cases, for a program or for one module function
    tests:
      - description: Greets by name
        inputs: {name: Ada}
        expectedOutputs: Hello, Ada

    # cases grouped by module function
    functions:
      greet:
        tests:
          - inputs: {name: Ada}
            expectedOutputs: Hello, Ada

Each case overrides the program's input defaults, runs the program and
compares the result with the expectation by deep structural equality.
Failures are reported as SpecResult records; they are never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from franka.errors import FrankaError, FunctionNotFound, SpecFileError
from franka.interpreter import Interpreter, load_document
from franka.model import Module, Program
from franka.serialization import load_yaml
from franka.values import Value, outputs_equal

logger = logging.getLogger(__name__)

SPEC_SUFFIXES = (".spec.yaml", ".spec.yml")
PROGRAM_SUFFIXES = (".yaml", ".yml")
MISMATCH = "Output mismatch"


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


# Marks an absent expected/actual value (null is a legitimate value)
MISSING: Any = _Missing()


@dataclass
class SpecCase:
    """
    One declared test case.

    Properties:
        expected: Scalar value or output record
        inputs: Values overriding the program's input defaults
        description: Optional label
    """

    expected: Any
    inputs: Dict[str, Value] = field(default_factory=dict)
    description: Optional[str] = None

    @classmethod
    def from_data(cls, d: Any, where: str) -> "SpecCase":
        if not isinstance(d, Mapping):
            raise SpecFileError(f"Invalid test case {where}: must be an object")
        if "expectedOutputs" in d:
            expected = d["expectedOutputs"]
        elif "expectedOutput" in d:
            expected = d["expectedOutput"]
        else:
            raise SpecFileError(f'Invalid test case {where}: must contain "expectedOutputs"')
        inputs = d.get("inputs", d.get("input")) or {}
        if not isinstance(inputs, Mapping):
            raise SpecFileError(f'Invalid test case {where}: "inputs" must be a mapping')
        return cls(
            expected=expected,
            inputs={str(k): v for k, v in inputs.items()},
            description=d.get("description"),
        )


@dataclass
class ProgramSpec:
    """
    A loaded spec file. Exactly one of tests / functions is set.

    Properties:
        tests: Cases of the legacy layout
        functions: function name -> cases, in file order
    """

    tests: Optional[List[SpecCase]] = None
    functions: Optional[Dict[str, List[SpecCase]]] = None


@dataclass
class SpecResult:
    """Outcome of one case."""

    passed: bool
    description: Optional[str] = None
    expected: Any = MISSING
    actual: Any = MISSING
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"passed": self.passed}
        if self.description is not None:
            d["description"] = self.description
        if self.expected is not MISSING:
            d["expected"] = self.expected
        if self.actual is not MISSING:
            d["actual"] = self.actual
        if self.error is not None:
            d["error"] = self.error
        return d


def _cases_from_data(items: Any, owner: str) -> List[SpecCase]:
    if not isinstance(items, list):
        raise SpecFileError(f'Invalid spec file: {owner} must contain a "tests" array')
    suffix = "" if owner == "spec" else f" for {owner}"
    return [SpecCase.from_data(item, f"at index {i}{suffix}") for i, item in enumerate(items)]


def spec_from_data(d: Any) -> ProgramSpec:
    if not isinstance(d, Mapping):
        raise SpecFileError("Invalid spec file: must be a YAML object")
    has_tests = d.get("tests") is not None
    has_functions = d.get("functions") is not None
    if has_tests and has_functions:
        raise SpecFileError(
            'Invalid spec file: cannot contain both "tests" and "functions" - use one format only'
        )
    if has_tests:
        return ProgramSpec(tests=_cases_from_data(d["tests"], "spec"))
    if has_functions:
        functions = d["functions"]
        if not isinstance(functions, Mapping):
            raise SpecFileError('Invalid spec file: "functions" must be an object')
        grouped: Dict[str, List[SpecCase]] = {}
        for name, function_spec in functions.items():
            owner = f'function "{name}"'
            if not isinstance(function_spec, Mapping):
                raise SpecFileError(f"Invalid function spec for {owner}: must be an object")
            grouped[str(name)] = _cases_from_data(function_spec.get("tests"), owner)
        return ProgramSpec(functions=grouped)
    raise SpecFileError(
        'Invalid spec file: must contain a "tests" array or a "functions" object'
    )


def load_spec(spec_path: Union[str, Path]) -> ProgramSpec:
    spec_path = Path(spec_path)
    if not spec_path.exists():
        raise SpecFileError(f"Spec file not found: {spec_path}")
    return spec_from_data(load_yaml(spec_path.read_text(encoding="utf-8")))


def find_spec_file(program_path: Union[str, Path]) -> Optional[Path]:
    """Locate <name>.spec.yaml, then <name>.spec.yml, beside a program."""
    program_path = Path(program_path)
    stem = program_path.name
    for suffix in PROGRAM_SUFFIXES:
        if stem.lower().endswith(suffix):
            stem = stem[: -len(suffix)]
            break
    for suffix in SPEC_SUFFIXES:
        candidate = program_path.with_name(stem + suffix)
        if candidate.exists():
            return candidate
    return None


def run_test(
    program: Program, case: SpecCase, interpreter: Optional[Interpreter] = None
) -> SpecResult:
    interpreter = interpreter or Interpreter()
    try:
        actual = interpreter.execute(program, case.inputs)
    except FrankaError as e:
        return SpecResult(
            passed=False,
            description=case.description,
            expected=case.expected,
            error=str(e),
        )
    if outputs_equal(case.expected, actual):
        return SpecResult(passed=True, description=case.description)
    return SpecResult(
        passed=False,
        description=case.description,
        expected=case.expected,
        actual=actual,
        error=MISMATCH,
    )


def _label(function_name: str, description: Optional[str], index: int) -> str:
    return f"[{function_name}] {description or f'Test {index + 1}'}"


def run_all_tests(
    program_path: Union[str, Path],
    spec_path: Union[str, Path],
    function_name: Optional[str] = None,
    interpreter: Optional[Interpreter] = None,
) -> List[SpecResult]:
    """
    Run every case of a spec file against a program or module.

    Raises:
        SpecFileError: malformed spec, a function layout against a
            non-module file, or an unknown requested function
        FrankaError: the program itself cannot be loaded
    """
    interpreter = interpreter or Interpreter()
    spec = load_spec(spec_path)
    document = load_document(program_path)
    logger.debug("Running spec %s against %s", spec_path, program_path)

    if spec.tests is not None:
        if isinstance(document, Module):
            program = document.to_program(function_name)
        else:
            program = document
        return [run_test(program, case, interpreter) for case in spec.tests]

    functions = spec.functions or {}
    if not isinstance(document, Module):
        raise SpecFileError(
            "Spec file uses the per-function format, but the program file is not a module"
        )

    if function_name is not None:
        if function_name not in functions:
            raise SpecFileError(
                f'Function "{function_name}" not found in spec file. '
                f"Available functions: {', '.join(functions)}"
            )
        program = document.to_program(function_name)
        return [run_test(program, case, interpreter) for case in functions[function_name]]

    results: List[SpecResult] = []
    for name, cases in functions.items():
        try:
            program = document.to_program(name)
        except FunctionNotFound as e:
            logger.debug("Spec references missing function %s", name)
            for index, case in enumerate(cases):
                results.append(
                    SpecResult(
                        passed=False,
                        description=_label(name, case.description, index),
                        error=f'Function "{name}" not found in module: {e}',
                    )
                )
            continue
        for index, case in enumerate(cases):
            result = run_test(program, case, interpreter)
            result.description = _label(name, case.description, index)
            results.append(result)
    return results


def summarize(results: List[SpecResult]) -> Tuple[int, int]:
    """Return (passed, failed) counts."""
    passed = sum(1 for r in results if r.passed)
    return passed, len(results) - passed
