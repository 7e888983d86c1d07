"""
Franka expression evaluator.

evaluate(expression, scope) walks a decoded expression tree and returns an
Evaluation: the expression's value plus the output fields its subtree
wrote through set operations.

Output accumulation is explicit. Nothing is mutated during a walk; every
composite node folds its children's output records together with
merge_outputs() in the order the children were evaluated, so a later
write to a field overrides an earlier one and fields nobody touches
later keep their earlier value.

Scoping is explicit too: let blocks evaluate their bindings and body in
child scopes and hand back only a value and an output record, so no
binding can leak out of the block.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from franka.errors import EvaluationDepthExceeded, InvalidArguments
from franka.expressions import (
    DEFAULT_MAX_DEPTH,
    BinaryExpression,
    BinaryOperator,
    Concat,
    Conditional,
    Expression,
    IfChain,
    Let,
    Literal,
    LogicalExpression,
    LogicalOperator,
    Sequence,
    SetOutputs,
    Substring,
    UnaryExpression,
    UnaryOperator,
    VariableReference,
)
from franka.scope import Scope
from franka.values import (
    Value,
    is_number,
    is_truthy,
    to_string,
    type_name,
    utf16_length,
    utf16_slice,
    values_equal,
)


@dataclass(frozen=True)
class Evaluation:
    """
    Result of evaluating one subtree.

    Properties:
        value: The expression's value
        outputs: Fields written by set operations inside the subtree
    """

    value: Value = None
    outputs: Mapping[str, Value] = field(default_factory=dict)


def merge_outputs(earlier: Mapping[str, Value], later: Mapping[str, Value]) -> Dict[str, Value]:
    """
    Merge two output records in traversal order.

    Fields in later override the same fields in earlier; all other fields
    of earlier survive. Neither argument is modified.
    """
    merged = dict(earlier)
    merged.update(later)
    return merged


class Evaluator:
    """
    Recursive tree-walking evaluator.

    An Evaluator holds no per-run state, so one instance can serve any
    number of concurrent evaluations.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        self.max_depth = max_depth

    def evaluate(self, expr: Expression, scope: Scope, depth: int = 0) -> Evaluation:
        if depth > self.max_depth:
            raise EvaluationDepthExceeded(self.max_depth)
        inner = depth + 1

        if isinstance(expr, Literal):
            return Evaluation(expr.value)

        if isinstance(expr, VariableReference):
            return Evaluation(scope.resolve(expr.name))

        if isinstance(expr, Concat):
            values, outputs = self._evaluate_all(expr.values, scope, inner)
            return Evaluation("".join(to_string(v) for v in values), outputs)

        if isinstance(expr, UnaryExpression):
            operand = self.evaluate(expr.operand, scope, inner)
            return Evaluation(_apply_unary(expr.operator, operand.value), operand.outputs)

        if isinstance(expr, Substring):
            return self._evaluate_substring(expr, scope, inner)

        if isinstance(expr, LogicalExpression):
            # No short circuit: every operand's set writes must land
            values, outputs = self._evaluate_all(expr.operands, scope, inner)
            truths = [is_truthy(v) for v in values]
            if expr.operator == LogicalOperator.AND:
                return Evaluation(all(truths), outputs)
            return Evaluation(any(truths), outputs)

        if isinstance(expr, BinaryExpression):
            (left, right), outputs = self._evaluate_all((expr.left, expr.right), scope, inner)
            if expr.operator == BinaryOperator.EQUALS:
                return Evaluation(values_equal(left, right), outputs)
            raise TypeError(f"Unsupported BinaryOperator: {expr.operator}")

        if isinstance(expr, SetOutputs):
            outputs: Dict[str, Value] = {}
            for name, field_expr in expr.fields:
                result = self.evaluate(field_expr, scope, inner)
                outputs = merge_outputs(outputs, result.outputs)
                outputs[name] = result.value
            return Evaluation(None, outputs)

        if isinstance(expr, Let):
            outputs = {}
            local = scope
            for name, binding in expr.bindings:
                result = self.evaluate(binding, local, inner)
                outputs = merge_outputs(outputs, result.outputs)
                local = local.bind(name, result.value)
            body = self.evaluate(expr.body, local, inner)
            return Evaluation(body.value, merge_outputs(outputs, body.outputs))

        if isinstance(expr, Conditional):
            condition = self.evaluate(expr.condition, scope, inner)
            branch = expr.then_branch if is_truthy(condition.value) else expr.else_branch
            return self._evaluate_branch(branch, scope, inner, condition.outputs)

        if isinstance(expr, IfChain):
            outputs = {}
            for clause in expr.clauses:
                condition = self.evaluate(clause.condition, scope, inner)
                outputs = merge_outputs(outputs, condition.outputs)
                if is_truthy(condition.value):
                    return self._evaluate_branch(clause.result, scope, inner, outputs)
            return self._evaluate_branch(expr.else_branch, scope, inner, outputs)

        if isinstance(expr, Sequence):
            values, outputs = self._evaluate_all(expr.items, scope, inner)
            return Evaluation(values[-1] if values else None, outputs)

        raise TypeError(f"Unsupported Expression type: {type(expr)}")

    def _evaluate_all(
        self, exprs: Iterable[Expression], scope: Scope, depth: int
    ) -> Tuple[List[Value], Dict[str, Value]]:
        """Evaluate exprs left to right, folding their output records."""
        values: List[Value] = []
        outputs: Dict[str, Value] = {}
        for expr in exprs:
            result = self.evaluate(expr, scope, depth)
            values.append(result.value)
            outputs = merge_outputs(outputs, result.outputs)
        return values, outputs

    def _evaluate_branch(
        self,
        branch: Optional[Expression],
        scope: Scope,
        depth: int,
        outputs: Mapping[str, Value],
    ) -> Evaluation:
        if branch is None:
            return Evaluation(None, dict(outputs))
        result = self.evaluate(branch, scope, depth)
        return Evaluation(result.value, merge_outputs(outputs, result.outputs))

    def _evaluate_substring(self, expr: Substring, scope: Scope, depth: int) -> Evaluation:
        parts = [expr.value, expr.start]
        if expr.end is not None:
            parts.append(expr.end)
        values, outputs = self._evaluate_all(parts, scope, depth)
        text = to_string(values[0])
        length = utf16_length(text)
        start = _index_argument("start", values[1], length)
        end = length if expr.end is None else _index_argument("end", values[2], length)
        if start > end:
            start, end = end, start
        return Evaluation(utf16_slice(text, start, end), outputs)


def _apply_unary(operator: UnaryOperator, value: Value) -> Value:
    if operator == UnaryOperator.UPPERCASE:
        return to_string(value).upper()
    if operator == UnaryOperator.LOWERCASE:
        return to_string(value).lower()
    if operator == UnaryOperator.LENGTH:
        return utf16_length(to_string(value))
    if operator == UnaryOperator.NOT:
        return not is_truthy(value)
    raise TypeError(f"Unsupported UnaryOperator: {operator}")


def _index_argument(name: str, value: Value, length: int) -> int:
    """Truncate a numeric index and clamp it to [0, length]."""
    if not is_number(value):
        raise InvalidArguments("substring", f'"{name}" must be a number, got {type_name(value)}')
    if math.isnan(value):
        return 0
    if math.isinf(value):
        return length if value > 0 else 0
    return max(0, min(int(value), length))


_default_evaluator = Evaluator()


def evaluate(expr: Expression, scope: Optional[Scope] = None) -> Evaluation:
    """Evaluate expr with the default evaluator (empty scope if none given)."""
    return _default_evaluator.evaluate(expr, scope if scope is not None else Scope())
