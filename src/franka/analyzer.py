"""
Module Analyzer: static diagnostics for Franka modules and programs.

This module provides lightweight, read-only analysis of decoded logic:
    - Variable usage inventory (respecting let scoping)
    - Undefined variable references and unused inputs
    - Output fields written, undeclared, or not written on every path
    - Expression complexity metrics

IMPORTANT: Analysis never evaluates anything. It only walks the tree and
produces reports; runtime behavior is the evaluator's business.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set, Union

from franka.expressions import (
    BinaryExpression,
    Concat,
    Conditional,
    Expression,
    IfChain,
    Let,
    Literal,
    LogicalExpression,
    Sequence,
    SetOutputs,
    Substring,
    UnaryExpression,
    VariableReference,
)
from franka.model import FunctionDefinition, Module, NamedOutputs, Program

# Warn above this nesting depth
MAX_RECOMMENDED_DEPTH = 12


@dataclass
class ExpressionMetrics:
    """Metrics about a single expression tree."""
    depth: int = 0
    node_count: int = 0
    variable_references: Set[str] = field(default_factory=set)
    undefined_references: Set[str] = field(default_factory=set)
    fields_written: Set[str] = field(default_factory=set)
    # Fields written on every path through the tree
    fields_guaranteed: Set[str] = field(default_factory=set)

    def add(self, other: ExpressionMetrics) -> None:
        """Fold in a child that is always evaluated."""
        self.depth = max(self.depth, other.depth + 1)
        self.node_count += other.node_count
        self.variable_references.update(other.variable_references)
        self.undefined_references.update(other.undefined_references)
        self.fields_written.update(other.fields_written)
        self.fields_guaranteed.update(other.fields_guaranteed)

    def add_alternatives(self, alternatives: List[Optional[ExpressionMetrics]]) -> None:
        """Fold in mutually exclusive children (None: a path writing nothing)."""
        guaranteed: Optional[Set[str]] = None
        for alternative in alternatives:
            written = alternative.fields_guaranteed if alternative is not None else set()
            guaranteed = set(written) if guaranteed is None else guaranteed & written
            if alternative is not None:
                saved = set(self.fields_guaranteed)
                self.add(alternative)
                self.fields_guaranteed = saved
        self.fields_guaranteed.update(guaranteed or set())


def _analyze_expression(expr: Expression, bound: FrozenSet[str]) -> ExpressionMetrics:
    """Recursively analyze an expression tree with the names bound above it."""
    metrics = ExpressionMetrics(node_count=1)

    if isinstance(expr, Literal):
        pass

    elif isinstance(expr, VariableReference):
        metrics.variable_references.add(expr.name)
        if expr.name not in bound:
            metrics.undefined_references.add(expr.name)

    elif isinstance(expr, Concat):
        for value in expr.values:
            metrics.add(_analyze_expression(value, bound))

    elif isinstance(expr, UnaryExpression):
        metrics.add(_analyze_expression(expr.operand, bound))

    elif isinstance(expr, Substring):
        for part in (expr.value, expr.start, expr.end):
            if part is not None:
                metrics.add(_analyze_expression(part, bound))

    elif isinstance(expr, LogicalExpression):
        for operand in expr.operands:
            metrics.add(_analyze_expression(operand, bound))

    elif isinstance(expr, BinaryExpression):
        metrics.add(_analyze_expression(expr.left, bound))
        metrics.add(_analyze_expression(expr.right, bound))

    elif isinstance(expr, SetOutputs):
        for name, value in expr.fields:
            metrics.add(_analyze_expression(value, bound))
            metrics.fields_written.add(name)
            metrics.fields_guaranteed.add(name)

    elif isinstance(expr, Let):
        local = set(bound)
        for name, binding in expr.bindings:
            metrics.add(_analyze_expression(binding, frozenset(local)))
            local.add(name)
        metrics.add(_analyze_expression(expr.body, frozenset(local)))

    elif isinstance(expr, Conditional):
        metrics.add(_analyze_expression(expr.condition, bound))
        metrics.add_alternatives([
            _analyze_expression(branch, bound) if branch is not None else None
            for branch in (expr.then_branch, expr.else_branch)
        ])

    elif isinstance(expr, IfChain):
        conditions = [_analyze_expression(c.condition, bound) for c in expr.clauses]
        for index, condition in enumerate(conditions):
            saved = set(metrics.fields_guaranteed)
            metrics.add(condition)
            if index > 0:
                # Only the first condition is evaluated on every path
                metrics.fields_guaranteed = saved
        results: List[Optional[ExpressionMetrics]] = [
            _analyze_expression(c.result, bound) for c in expr.clauses
        ]
        results.append(
            _analyze_expression(expr.else_branch, bound) if expr.else_branch is not None else None
        )
        metrics.add_alternatives(results)

    elif isinstance(expr, Sequence):
        for item in expr.items:
            metrics.add(_analyze_expression(item, bound))

    else:
        raise TypeError(f"Unsupported Expression type: {type(expr)}")

    return metrics


@dataclass
class FunctionReport:
    """Analysis report for one function or program."""

    name: str
    depth: int = 0
    node_count: int = 0

    # Variable usage
    variables_referenced: Set[str] = field(default_factory=set)
    undefined_variables: Set[str] = field(default_factory=set)
    unused_inputs: Set[str] = field(default_factory=set)
    inputs_without_default: Set[str] = field(default_factory=set)

    # Named outputs
    fields_written: Set[str] = field(default_factory=set)
    undeclared_fields: Set[str] = field(default_factory=set)
    unset_fields: Set[str] = field(default_factory=set)
    conditionally_set_fields: Set[str] = field(default_factory=set)

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        if msg not in self.warnings:
            self.warnings.append(msg)


@dataclass
class ModuleReport:
    """Analysis report for a module: one FunctionReport per function."""

    module_name: str
    functions: Dict[str, FunctionReport] = field(default_factory=dict)

    @property
    def warnings(self) -> List[str]:
        return [f"{name}: {w}" for name, report in self.functions.items() for w in report.warnings]

    @property
    def total_nodes(self) -> int:
        return sum(r.node_count for r in self.functions.values())


def analyze_function(name: str, function: Union[FunctionDefinition, Program]) -> FunctionReport:
    """
    Analyze one function (or program).

    Checks for:
    - References to names that are neither inputs nor let-bound
    - Inputs never referenced
    - set writes to undeclared fields, or under a non-named output
    - Declared named outputs missing on some or all paths
    - Excessive nesting
    """
    report = FunctionReport(name=name)
    declared_inputs = set(function.inputs.keys())
    metrics = _analyze_expression(function.logic, frozenset(declared_inputs))

    report.depth = metrics.depth
    report.node_count = metrics.node_count
    report.variables_referenced = set(metrics.variable_references)
    report.undefined_variables = set(metrics.undefined_references)
    report.unused_inputs = declared_inputs - metrics.variable_references
    report.inputs_without_default = {
        n for n, definition in function.inputs.items() if not definition.has_default
    }
    report.fields_written = set(metrics.fields_written)

    if isinstance(function.output, NamedOutputs):
        declared_fields = set(function.output.fields.keys())
        report.undeclared_fields = metrics.fields_written - declared_fields
        report.unset_fields = declared_fields - metrics.fields_written
        report.conditionally_set_fields = (
            (declared_fields & metrics.fields_written) - metrics.fields_guaranteed
        )
    elif metrics.fields_written:
        report.add_warning(
            f"set is ignored without a named output declaration: {', '.join(sorted(metrics.fields_written))}"
        )

    if report.undefined_variables:
        report.add_warning(
            f"Undefined variable references: {', '.join(sorted(report.undefined_variables))}"
        )
    if report.unused_inputs:
        report.add_warning(f"Unused inputs: {', '.join(sorted(report.unused_inputs))}")
    if report.undeclared_fields:
        report.add_warning(f"Undeclared outputs set: {', '.join(sorted(report.undeclared_fields))}")
    if report.unset_fields:
        report.add_warning(f"Outputs never set: {', '.join(sorted(report.unset_fields))}")
    if report.conditionally_set_fields:
        report.add_warning(
            f"Outputs not set on every path: {', '.join(sorted(report.conditionally_set_fields))}"
        )
    if report.depth > MAX_RECOMMENDED_DEPTH:
        report.add_warning(f"High expression complexity: max depth {report.depth}")

    return report


def analyze_module(module: Module) -> ModuleReport:
    report = ModuleReport(module_name=module.name)
    for name, function in module.functions.items():
        report.functions[name] = analyze_function(name, function)
    return report
