"""
Weighted disjunctive queries.

A feedback query is a bag of `(term, boost)` clauses over one field, every clause
optional (SHOULD). The textual form `"0.4:apple 0.6:pie"` is accepted by `parse_weighted`
so expanded queries can be written to disk and read back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ltrkit.feedback.vector import SparseTermVector


@dataclass(frozen=True)
class WeightedQuery:
    field: str
    clauses: tuple[tuple[str, float], ...] = field(default_factory=tuple)

    @classmethod
    def from_vector(cls, field_name: str, vector: SparseTermVector) -> "WeightedQuery":
        return cls(field_name, tuple(vector.items()))

    def terms(self) -> list[str]:
        return [t for t, _ in self.clauses]

    def to_string(self) -> str:
        return " ".join(f"({self.field}:{t})^{w:.6g}" for t, w in self.clauses)

    def to_raw(self) -> str:
        """Inverse of `parse_weighted`."""
        return " ".join(f"{w:.6g}:{t}" for t, w in self.clauses)

    def __str__(self) -> str:
        return self.to_string()


def _split_weighted(text: str) -> Iterable[tuple[str, float]]:
    for s in text.split():
        wt = s.split(":")
        if len(wt) != 2:
            raise ValueError(f"Expected 'weight:term', got {s!r}")
        yield wt[1], float(wt[0])


def parse_weighted(field_name: str, text: str) -> WeightedQuery:
    return WeightedQuery(field_name, tuple(_split_weighted(text)))


def weighted_tokens(text: str) -> list[str]:
    return [t for t, _ in _split_weighted(text)]
