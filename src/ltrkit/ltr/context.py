from __future__ import annotations

from typing import Any, Iterable, Optional

from ltrkit.index.stats import TermStatisticsProvider


class QueryContext:
    """
    Per-job view of the query: its id, analyzed tokens and the optional self-log
    table `{doc_id: {feature_name: value}}` supplied by an upstream ranker.
    """

    def __init__(
        self,
        qid: str,
        query_tokens: list[str],
        self_log: Optional[dict[str, dict[str, float]]] = None,
        payload: Optional[dict[str, Any]] = None,
    ):
        self.qid = qid
        self.query_tokens = list(query_tokens)
        self.query_freqs: dict[str, int] = {}
        for t in self.query_tokens:
            self.query_freqs[t] = self.query_freqs.get(t, 0) + 1
        self._self_log = {d: dict(v) for d, v in (self_log or {}).items()}
        self.payload = payload or {}

    @classmethod
    def from_payload(cls, qid: str, payload: dict[str, Any]) -> "QueryContext":
        return cls(
            qid,
            payload.get("analyzed") or [],
            self_log=payload.get("selfLog"),
            payload=payload,
        )

    def query_pairs(self) -> list[tuple[str, str]]:
        """Every unordered pair of query positions (i < j)."""
        toks = self.query_tokens
        return [(toks[i], toks[j]) for i in range(len(toks) - 1) for j in range(i + 1, len(toks))]

    def self_log(self, doc_id: str, feature_name: str) -> Optional[float]:
        return self._self_log.get(doc_id, {}).get(feature_name)


class FieldContext:
    """
    Lazily cached statistics of one field for the document a DocumentContext is
    currently bound to. Collection-level numbers survive `reset()`.
    """

    def __init__(self, provider: TermStatisticsProvider, field: str):
        self.provider = provider
        self.field = field
        self.total_term_freq = provider.corpus_total_term_frequency(field)
        self._collection_freq: dict[str, int] = {}
        self._doc_freq: dict[str, int] = {}
        self.handle: Any = None
        self._term_freq: dict[str, int] = {}
        self._positions: Optional[dict[str, list[int]]] = None
        self._doc_size: Optional[int] = None

    def reset(self, handle: Any) -> None:
        self.handle = handle
        self._term_freq = {}
        self._positions = None
        self._doc_size = None

    @property
    def doc_size(self) -> int:
        if self._doc_size is None:
            self._doc_size = self.provider.document_length(self.handle, self.field)
        return self._doc_size

    def term_freq(self, term: str) -> int:
        tf = self._term_freq.get(term)
        if tf is None:
            tf = self._term_freq[term] = self.provider.term_frequency(self.handle, self.field, term)
        return tf

    def collection_freq(self, term: str) -> int:
        cf = self._collection_freq.get(term)
        if cf is None:
            cf = self._collection_freq[term] = self.provider.collection_frequency(self.field, term)
        return cf

    def doc_freq(self, term: str) -> int:
        df = self._doc_freq.get(term)
        if df is None:
            df = self._doc_freq[term] = self.provider.document_frequency(self.field, term)
        return df

    def count_bigram(self, first: str, second: str, gap: int) -> int:
        """Position pairs with `first` at i and `second` at j where 0 < j - i <= gap."""
        if self._positions is None:
            self._positions = self.provider.term_positions(self.handle, self.field)
        first_pos = self._positions.get(first)
        second_pos = self._positions.get(second)
        if not first_pos or not second_pos:
            return 0
        count = 0
        for i in first_pos:
            for j in second_pos:
                if 0 < j - i <= gap:
                    count += 1
        return count


class DocumentContext:
    """
    Re-bindable handle on the document currently being scored inside one job.
    `update_doc` points it at the next document; it is never shared across jobs.
    """

    def __init__(self, provider: TermStatisticsProvider, fields: Iterable[str]):
        self.provider = provider
        self.num_docs = provider.total_document_count()
        self.doc_id: Optional[str] = None
        self.handle: Any = None
        self.field_contexts: dict[str, FieldContext] = {f: FieldContext(provider, f) for f in fields}

    def update_doc(self, doc_id: str, handle: Any) -> None:
        self.doc_id = doc_id
        self.handle = handle
        for fc in self.field_contexts.values():
            fc.reset(handle)

    def field(self, name: str) -> FieldContext:
        return self.field_contexts[name]
