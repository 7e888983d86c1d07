"""
Output contract validation and result shaping.

Two checkpoints:
    1. Declaration time: output_from_data() rejects malformed contracts
       before any logic runs.
    2. After evaluation: shape_result() turns the evaluator's value and
       output record into the caller-visible result, enforcing the contract.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from franka.errors import (
    InvalidOutputType,
    MissingOutputField,
    MissingOutputType,
    OutputCannotHaveDefault,
    OutputDeclarationError,
    OutputTypeMismatch,
    UndeclaredOutputField,
)
from franka.model import NamedOutputs, OutputDeclaration, SingleOutput
from franka.values import OUTPUT_TYPES, Value, matches_type, type_name

logger = logging.getLogger(__name__)


def is_single_output(data: Mapping[str, Any]) -> bool:
    """A mapping whose "type" value is a string declares a single output."""
    return isinstance(data.get("type"), str)


def _check_definition(definition: Any, field: Optional[str]) -> str:
    if not isinstance(definition, Mapping):
        target = "Output" if field is None else f'Output "{field}"'
        raise OutputDeclarationError(f"{target} must be a mapping with a type")
    if "default" in definition:
        raise OutputCannotHaveDefault(field)
    if "type" not in definition:
        raise MissingOutputType(field)
    declared = definition["type"]
    if declared not in OUTPUT_TYPES:
        raise InvalidOutputType(declared, field)
    extra = sorted(set(definition.keys()) - {"type"})
    if extra:
        target = "Output" if field is None else f'Output "{field}"'
        raise OutputDeclarationError(f"{target} has unexpected keys: {', '.join(extra)}")
    return declared


def output_from_data(data: Any) -> Optional[OutputDeclaration]:
    """
    Build an output declaration from its document form.

    Args:
        data: None, {type: T}, or {field: {type: T}, ...}

    Raises:
        OutputDeclarationError and its subclasses
    """
    if data is None:
        return None
    if not isinstance(data, Mapping):
        raise OutputDeclarationError("Output declaration must be a mapping")
    if is_single_output(data):
        return SingleOutput(type=_check_definition(data, None))
    fields: Dict[str, str] = {}
    for name, definition in data.items():
        fields[str(name)] = _check_definition(definition, str(name))
    return NamedOutputs(fields=fields)


def output_to_data(declaration: Optional[OutputDeclaration]) -> Any:
    if declaration is None:
        return None
    if isinstance(declaration, SingleOutput):
        return {"type": declaration.type}
    return {name: {"type": declared} for name, declared in declaration.fields.items()}


def shape_result(
    declaration: Optional[OutputDeclaration],
    value: Value,
    outputs: Mapping[str, Value],
) -> Any:
    """
    Produce the final result of one function invocation.

    Args:
        declaration: The function's output contract (or None)
        value: Value of the top-level logic expression
        outputs: Output record accumulated by set operations

    Returns:
        The raw value (no contract / single output), or a dict holding
        exactly the declared fields, in declaration order.

    Raises:
        OutputShapeError and its subclasses
    """
    if declaration is None or isinstance(declaration, SingleOutput):
        if outputs:
            logger.debug(
                "Discarding %d output field(s) set without a named output declaration",
                len(outputs),
            )
        if isinstance(declaration, SingleOutput) and not matches_type(value, declaration.type):
            raise OutputTypeMismatch(declaration.type, type_name(value))
        return value

    for name in outputs:
        if name not in declaration.fields:
            raise UndeclaredOutputField(name)

    record: Dict[str, Value] = {}
    for name, declared in declaration.fields.items():
        if name not in outputs:
            raise MissingOutputField(name)
        field_value = outputs[name]
        if not matches_type(field_value, declared):
            raise OutputTypeMismatch(declared, type_name(field_value), field=name)
        record[name] = field_value
    return record
