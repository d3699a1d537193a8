from __future__ import annotations

from collections import Counter
from typing import Iterable, Iterator, Optional


class SparseTermVector:
    """
    Mapping from term to a float weight.

    Weights may go negative while a caller is accumulating; `normalize_l1` turns a
    nonnegative vector into a distribution summing to 1.
    """

    def __init__(self, weights: Optional[dict[str, float]] = None):
        self._weights: dict[str, float] = dict(weights) if weights else {}

    @classmethod
    def from_terms(cls, terms: Iterable[str]) -> "SparseTermVector":
        return cls({t: float(c) for t, c in Counter(terms).items()})

    def add(self, term: str, weight: float) -> None:
        self._weights[term] = self._weights.get(term, 0.0) + weight

    def set(self, term: str, weight: float) -> None:
        self._weights[term] = weight

    def get(self, term: str) -> float:
        return self._weights.get(term, 0.0)

    def terms(self) -> list[str]:
        return list(self._weights)

    def l1_norm(self) -> float:
        return sum(abs(w) for w in self._weights.values())

    def normalize_l1(self) -> "SparseTermVector":
        """Scale in place to unit L1 norm. A zero-norm vector is left untouched."""
        norm = self.l1_norm()
        if norm > 0.0:
            for t in self._weights:
                self._weights[t] /= norm
        return self

    def prune(self, k: int) -> "SparseTermVector":
        """Keep the k highest-weight terms; ties go to the lexicographically smaller term."""
        if k < 0:
            raise ValueError("k must be non-negative")
        kept = self.items()[:k]
        self._weights = dict(kept)
        return self

    def items(self) -> list[tuple[str, float]]:
        """Terms ordered by descending weight, then by term."""
        return sorted(self._weights.items(), key=lambda kv: (-kv[1], kv[0]))

    def to_dict(self) -> dict[str, float]:
        return dict(self._weights)

    @staticmethod
    def interpolate(x: "SparseTermVector", y: "SparseTermVector", x_weight: float) -> "SparseTermVector":
        """z[t] = x_weight * x[t] + (1 - x_weight) * y[t] over the union of both vocabularies."""
        z = SparseTermVector()
        for t in set(x._weights) | set(y._weights):
            z._weights[t] = x_weight * x.get(t) + (1.0 - x_weight) * y.get(t)
        return z

    def __iter__(self) -> Iterator[str]:
        return iter(self._weights)

    def __len__(self) -> int:
        return len(self._weights)

    def __contains__(self, term: object) -> bool:
        return term in self._weights

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SparseTermVector):
            return NotImplemented
        return self._weights == other._weights

    def __repr__(self) -> str:
        body = " ".join(f"{t}:{w:.4f}" for t, w in self.items())
        return f"SparseTermVector({body})"
