from abc import ABC, abstractmethod
from typing import Any, Iterator, Optional


class TermStatisticsProvider(ABC):
    """
    Read-only view over per-document and corpus-wide term statistics.

    `handle` is whatever the provider uses internally to address a document; callers
    obtain one from `resolve_document` and never build it themselves. Implementations
    raise `StatisticsProviderError` when a lookup fails.
    """

    @abstractmethod
    def resolve_document(self, external_id: str) -> Optional[Any]:
        """Internal handle for an external doc id, or None when the index lacks it."""

    @abstractmethod
    def term_frequency(self, handle: Any, field: str, term: str) -> int:
        pass

    @abstractmethod
    def collection_frequency(self, field: str, term: str) -> int:
        pass

    @abstractmethod
    def document_length(self, handle: Any, field: str) -> int:
        pass

    @abstractmethod
    def corpus_total_term_frequency(self, field: str) -> int:
        pass

    @abstractmethod
    def document_frequency(self, field: str, term: str) -> int:
        pass

    @abstractmethod
    def total_document_count(self) -> int:
        pass

    @abstractmethod
    def term_vector(self, handle: Any, field: str) -> Iterator[tuple[str, int]]:
        pass

    @abstractmethod
    def term_positions(self, handle: Any, field: str) -> dict[str, list[int]]:
        pass
