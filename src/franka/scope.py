"""
Variable scope for Franka evaluation.

A Scope is immutable. Binding a name returns a new child scope linked to
its parent, so a let block never has to undo anything: when the block
finishes, the evaluator simply keeps using the scope it had on entry.
Sibling branches can never observe each other's bindings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from franka.errors import UndefinedVariable
from franka.values import Value


@dataclass(frozen=True)
class Scope:
    """
    A single frame of bindings plus a link to the enclosing frame.

    Properties:
        bindings: Names bound in this frame
        parent: Enclosing frame, None for the root
    """

    bindings: Mapping[str, Value] = field(default_factory=dict)
    parent: Optional["Scope"] = None

    @classmethod
    def from_inputs(
        cls,
        inputs: Mapping[str, Any],
        overrides: Optional[Mapping[str, Value]] = None,
    ) -> "Scope":
        """
        Seed a root scope from input declarations.

        Inputs declared without a default stay unbound unless an override
        supplies a value; referencing them is an UndefinedVariable error.
        """
        bindings: Dict[str, Value] = {}
        for name, definition in inputs.items():
            if definition.has_default:
                bindings[name] = definition.default
        if overrides:
            bindings.update(overrides)
        return cls(bindings=bindings)

    def bind(self, name: str, value: Value) -> "Scope":
        return Scope(bindings={name: value}, parent=self)

    def resolve(self, name: str) -> Value:
        scope: Optional[Scope] = self
        while scope is not None:
            if name in scope.bindings:
                return scope.bindings[name]
            scope = scope.parent
        raise UndefinedVariable(name)

    def contains(self, name: str) -> bool:
        try:
            self.resolve(name)
        except UndefinedVariable:
            return False
        return True

    def names(self) -> List[str]:
        """All visible names, innermost first."""
        seen: List[str] = []
        scope: Optional[Scope] = self
        while scope is not None:
            for name in scope.bindings:
                if name not in seen:
                    seen.append(name)
            scope = scope.parent
        return seen

    def to_dict(self) -> Dict[str, Value]:
        """Flatten the visible bindings (inner frames shadow outer ones)."""
        return {name: self.resolve(name) for name in self.names()}
