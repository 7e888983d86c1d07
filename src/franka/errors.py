"""
Error taxonomy for the Franka interpreter.

Every failure raised by the package derives from FrankaError, so callers
(front ends, the spec runner) can catch one type and still inspect the
structured fields of the concrete subclass.

Groups:
    - Expression errors: raised while decoding a logic tree
    - UndefinedVariable: raised while evaluating
    - Declaration errors: malformed input/output declarations
    - Output shape errors: a result that does not fit its output contract
    - Resolution errors: function lookup and test-input binding
    - Document errors: malformed module/program/spec documents

All errors are terminal for the current evaluation. Nothing is retried.
"""

from __future__ import annotations

from typing import Iterable, Optional


class FrankaError(Exception):
    """Base class for all Franka errors."""
    pass


# =============================================================================
# Expression errors (decode time)
# =============================================================================


class ExpressionError(FrankaError):
    """A logic tree does not conform to the expression grammar."""
    pass


class UnknownOperation(ExpressionError):
    """An operation object whose key is not a recognized operation."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown operation: {name}")


class InvalidArguments(ExpressionError):
    """Structurally malformed operation arguments."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} operation {detail}")


class InvalidArrayExpression(ExpressionError):
    """A bare array that is not a valid if/then/else chain."""

    def __init__(self, detail: str = ""):
        self.detail = detail
        message = "Arrays are only valid as if/then/else chains"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MissingInExpression(ExpressionError):
    """A let block without an in expression."""

    def __init__(self):
        super().__init__('let operation requires an "in" expression')


# =============================================================================
# Evaluation errors
# =============================================================================


class UndefinedVariable(FrankaError):
    """A variable reference to a name absent from scope."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Undefined variable: {name}")


class EvaluationDepthExceeded(FrankaError):
    """A logic tree nested deeper than decoding or evaluation allows."""

    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        super().__init__(f"Expression nesting exceeds maximum depth of {max_depth}")


# =============================================================================
# Declaration errors
# =============================================================================


class OutputDeclarationError(FrankaError):
    """An output declaration is malformed."""
    pass


class InvalidOutputType(OutputDeclarationError):
    def __init__(self, type_name: object, field: Optional[str] = None):
        self.type_name = type_name
        self.field = field
        if field is None:
            message = f"Invalid output type: {type_name}"
        else:
            message = f'Invalid type "{type_name}" for output "{field}"'
        super().__init__(message)


class MissingOutputType(OutputDeclarationError):
    def __init__(self, field: Optional[str] = None):
        self.field = field
        if field is None:
            message = "Output declaration must have a type"
        else:
            message = f'Output "{field}" must have a type'
        super().__init__(message)


class OutputCannotHaveDefault(OutputDeclarationError):
    def __init__(self, field: Optional[str] = None):
        self.field = field
        if field is None:
            message = "Output cannot have a default value"
        else:
            message = f'Output "{field}" cannot have a default value'
        super().__init__(message)


class InvalidInputType(FrankaError):
    """An input declaration with a missing or unsupported type."""

    def __init__(self, name: str, type_name: object):
        self.name = name
        self.type_name = type_name
        super().__init__(f'Invalid type "{type_name}" for input "{name}"')


# =============================================================================
# Output shape errors (after evaluation)
# =============================================================================


class OutputShapeError(FrankaError):
    """An evaluation result does not conform to its output contract."""
    pass


class MissingOutputField(OutputShapeError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f'Output "{field}" was never set')


class UndeclaredOutputField(OutputShapeError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f'Output "{field}" is not declared')


class OutputTypeMismatch(OutputShapeError):
    def __init__(self, expected: str, actual: str, field: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        self.field = field
        target = "Output" if field is None else f'Output "{field}"'
        super().__init__(f"{target} must be of type {expected}, got {actual}")


# =============================================================================
# Resolution errors
# =============================================================================


class FunctionNotFound(FrankaError):
    def __init__(self, name: Optional[str], available: Iterable[str] = ()):
        self.name = name
        self.available = list(available)
        listing = ", ".join(self.available) or "none"
        if name is None:
            message = f"Module has no functions (available: {listing})"
        else:
            message = f'Function "{name}" not found. Available functions: {listing}'
        super().__init__(message)


class UndeclaredTestInput(FrankaError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Input "{name}" is not declared in the program')


# =============================================================================
# Document errors
# =============================================================================


class DocumentError(FrankaError):
    """A module or program document is structurally invalid."""
    pass


class SpecFileError(DocumentError):
    """A spec (test) file is missing or structurally invalid."""
    pass
