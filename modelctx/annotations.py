"""Annotations that record which array items and object properties were evaluated."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

__all__ = ["Annotations"]


@dataclass
class Annotations:
    """Evaluation results used by unevaluatedItems and unevaluatedProperties."""

    all_items: bool = False
    end_index: int = 0
    evaluated_indexes: set[int] = field(default_factory=set)
    all_properties: bool = False
    evaluated_properties: set[str] = field(default_factory=set)

    def note_index(self, i: int) -> None:
        """Mark index ``i`` as evaluated."""
        self.evaluated_indexes.add(i)

    def note_end_index(self, end: int) -> None:
        """Mark every index below ``end`` as evaluated."""
        if end > self.end_index:
            self.end_index = end

    def note_property(self, prop: str) -> None:
        """Mark ``prop`` as evaluated."""
        self.evaluated_properties.add(prop)

    def note_properties(self, props: Iterable[str]) -> None:
        """Mark each of ``props`` as evaluated."""
        self.evaluated_properties.update(props)

    def merge(self, other: Optional[Annotations]) -> None:
        """Add the annotations of ``other`` to these."""
        if other is None:
            return
        if other.all_items:
            self.all_items = True
        if other.end_index > self.end_index:
            self.end_index = other.end_index
        self.evaluated_indexes |= other.evaluated_indexes
        if other.all_properties:
            self.all_properties = True
        self.evaluated_properties |= other.evaluated_properties