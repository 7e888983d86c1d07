"""
Expression System for Franka

Every piece of function logic is decoded once, at load time, into the
closed set of node types defined here. The evaluator dispatches on these
types; it never inspects raw document keys.

This ensures:
    - Malformed logic fails when a document is loaded, not halfway through a run
    - The evaluator can match node types exhaustively
    - Trees are immutable and hashable (frozen dataclasses, tuple children)

ARCHITECTURAL RULE:
    This module is structure only.
    Evaluation lives in franka.evaluator.
    Decoding and encoding live in franka.serialization.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

# Deepest logic tree accepted by decoding and evaluation. Each level costs
# several interpreter frames, so this stays well under the recursion limit.
DEFAULT_MAX_DEPTH = 100


class Expression(ABC):
    """
    Base class for all expression nodes.

    DO NOT:
        - Add evaluation logic here (belongs in the evaluator)
        - Add document spellings here (belong in serialization)

    This class is structure only.
    """
    pass


@dataclass(frozen=True)
class Literal(Expression):
    """
    A constant value.

    Examples:
        - "Hello"
        - 42
        - true
        - null

    Properties:
        value: str, int, float, bool or None
    """

    value: Union[str, int, float, bool, None]


@dataclass(frozen=True)
class VariableReference(Expression):
    """
    Looks up a name in the current scope.

    Document spellings:
        {get: name}
        "$name"

    Properties:
        name: The bare variable name (never the $-prefixed spelling)
    """

    name: str


@dataclass(frozen=True)
class Concat(Expression):
    """
    Joins the string representations of its operands, in order.

    Document spellings:
        {concat: [a, b, ...]}
        {concat: {values: [a, b, ...]}}
    """

    values: Tuple[Expression, ...]


class UnaryOperator(Enum):
    """Single-operand operations."""

    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    LENGTH = "length"
    NOT = "not"


@dataclass(frozen=True)
class UnaryExpression(Expression):
    """
    A single-operand operation.

    Document spellings:
        {uppercase: expr}
        {uppercase: {value: expr}}
    """

    operator: UnaryOperator
    operand: Expression


@dataclass(frozen=True)
class Substring(Expression):
    """
    Slices the string representation of value.

    Document spelling:
        {substring: {value: expr, start: expr, end?: expr}}

    Properties:
        end: None means "to the end of the string"
    """

    value: Expression
    start: Expression
    end: Optional[Expression] = None


class LogicalOperator(Enum):
    AND = "and"
    OR = "or"


@dataclass(frozen=True)
class LogicalExpression(Expression):
    """
    Boolean combination of any number of operands.

    IMPORTANT:
        Every operand is evaluated, even once the result is known.
        Operands may contain set operations whose writes must land.
    """

    operator: LogicalOperator
    operands: Tuple[Expression, ...]


class BinaryOperator(Enum):
    """
    Two-operand operators.

    Equality is the only one: the language has no arithmetic or ordering.
    """

    EQUALS = "equals"


@dataclass(frozen=True)
class BinaryExpression(Expression):
    """
    Document spelling:
        {equals: {left: expr, right: expr}}
    """

    operator: BinaryOperator
    left: Expression
    right: Expression


@dataclass(frozen=True)
class SetOutputs(Expression):
    """
    Writes named output fields.

    Document spelling:
        {set: {field: expr, ...}}

    Properties:
        fields: (field, expression) pairs in document order

    Evaluates to null. Its effect is on the output record only.
    """

    fields: Tuple[Tuple[str, Expression], ...]


@dataclass(frozen=True)
class Let(Expression):
    """
    Sequential local bindings.

    Document spellings:
        {let: {x: expr, y: expr}, in: body}
        {let: {x: expr, y: expr, in: body}}

    Each binding sees the ones declared before it. The body sees all of
    them. Nothing bound here is visible outside the block.
    """

    bindings: Tuple[Tuple[str, Expression], ...]
    body: Expression


class ConditionalStyle(Enum):
    """Which document spelling a conditional came from."""

    NESTED = "nested"  # {if: {condition, then, else}}
    FLAT = "flat"      # {if, then, else}


@dataclass(frozen=True)
class Conditional(Expression):
    """
    if/then/else.

    Both spellings have identical semantics. Either branch may be absent;
    an absent active branch evaluates to null.

    Properties:
        then_branch / else_branch: None when the key was absent.
            A present branch whose value is null is Literal(None).
    """

    condition: Expression
    then_branch: Optional[Expression] = None
    else_branch: Optional[Expression] = None
    style: ConditionalStyle = ConditionalStyle.FLAT


@dataclass(frozen=True)
class ChainClause:
    """One {if, then} element of an if chain."""

    condition: Expression
    result: Expression


@dataclass(frozen=True)
class IfChain(Expression):
    """
    First-match-wins chain.

    Document spelling:
        - if: cond1
          then: result1
        - if: cond2
          then: result2
        - else: fallback

    Properties:
        clauses: The {if, then} elements in order
        else_branch: The terminal {else} value, None when absent
    """

    clauses: Tuple[ChainClause, ...]
    else_branch: Optional[Expression] = None


@dataclass(frozen=True)
class Sequence(Expression):
    """
    A branch body made of several expressions.

    Only valid as the then/else of a conditional or chain clause.
    Every item is evaluated in order; the value is the last item's value.
    """

    items: Tuple[Expression, ...]
