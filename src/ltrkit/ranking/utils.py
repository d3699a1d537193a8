from functools import total_ordering
from typing import Any, Callable, Optional


@total_ordering
class ScoredDocument:
    def __init__(self, doc_id: str, score: float = 0.0, handle: Optional[Any] = None):
        self.doc_id = doc_id
        self.score = score
        self.handle = handle

    def __eq__(self, other):
        if not isinstance(other, ScoredDocument):
            return NotImplemented
        return self.score == other.score

    def __lt__(self, other):
        if not isinstance(other, ScoredDocument):
            return NotImplemented
        return self.score < other.score

    def __repr__(self) -> str:
        return f"ScoredDocument({self.doc_id!r}, {self.score:.4f})"


def sort_by_score(docs: list[ScoredDocument]) -> list[ScoredDocument]:
    """Descending score; ties broken by doc id so runs are reproducible."""
    return sorted(docs, key=lambda d: (-d.score, d.doc_id))


class Registry:
    """Name -> factory lookup shared by the pluggable parts of the project."""

    def __init__(self, kind: str, on_missing: Optional[Callable[[str], Exception]] = None):
        self.kind = kind
        self._registry: dict[str, Callable] = {}
        self._on_missing = on_missing

    def register(self, name: str, factory: Callable) -> Callable:
        self._registry[name] = factory
        return factory

    def get(self, name: str) -> Callable:
        factory = self._registry.get(name)
        if factory is None:
            if self._on_missing is not None:
                raise self._on_missing(name)
            raise ValueError(f"{self.kind} '{name}' not found in registry.")
        return factory
