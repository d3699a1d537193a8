from __future__ import annotations

import abc
import copy
from typing import Optional

from ltrkit.errors import UnknownExtractorError
from ltrkit.ltr.context import DocumentContext, FieldContext, QueryContext
from ltrkit.ranking.bm25 import DEFAULT_B, DEFAULT_K1, bm25_term_score, tfidf_term_score
from ltrkit.ranking.utils import Registry

DEFAULT_FIELD = "contents"


class FeatureExtractor(abc.ABC):
    """
    One column of an LTR feature vector.

    Extractors carry configuration only; `duplicate()` hands every job its own copy, so
    an implementation may keep scratch state on `self` between calls.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Column label, unique within a chain."""

    @property
    def field(self) -> Optional[str]:
        """Index field read by the extractor; None means the default field."""
        return None

    @abc.abstractmethod
    def extract(self, doc: DocumentContext, query: QueryContext) -> float:
        pass

    def post_edit(self, doc: DocumentContext, query: QueryContext, value: float) -> float:
        return value

    def duplicate(self) -> "FeatureExtractor":
        return copy.deepcopy(self)

    def _field_context(self, doc: DocumentContext) -> FieldContext:
        return doc.field(self.field or DEFAULT_FIELD)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


EXTRACTORS = Registry("Extractor", on_missing=UnknownExtractorError)


def register_extractor(kind: str):
    def _decorator(cls):
        EXTRACTORS.register(kind, cls)
        return cls
    return _decorator


def create_extractor(kind: str, field: Optional[str] = None, **parameters) -> FeatureExtractor:
    factory = EXTRACTORS.get(kind)
    if field is not None:
        parameters["field"] = field
    try:
        return factory(**parameters)
    except TypeError as e:
        raise ValueError(f"Bad parameters for extractor {kind}: {e}") from e


class _FieldExtractor(FeatureExtractor):
    def __init__(self, field: Optional[str] = None):
        self._field = field

    @property
    def field(self) -> Optional[str]:
        return self._field


@register_extractor("SumMatchingTF")
class SumMatchingTF(_FieldExtractor):
    """Sum of term frequencies of every query token."""

    @property
    def name(self) -> str:
        return "SumMatchingTF" if self._field is None else f"{self._field}_SumMatchingTF"

    def extract(self, doc: DocumentContext, query: QueryContext) -> float:
        context = self._field_context(doc)
        return float(sum(context.term_freq(t) for t in query.query_tokens))


@register_extractor("MatchingTermCount")
class MatchingTermCount(_FieldExtractor):
    """Number of distinct query terms present in the document."""

    @property
    def name(self) -> str:
        return "MatchingTermCount" if self._field is None else f"{self._field}_MatchingTermCount"

    def extract(self, doc: DocumentContext, query: QueryContext) -> float:
        context = self._field_context(doc)
        return float(sum(1 for t in query.query_freqs if context.term_freq(t) > 0))


@register_extractor("QueryLength")
class QueryLength(FeatureExtractor):
    @property
    def name(self) -> str:
        return "QueryLength"

    def extract(self, doc: DocumentContext, query: QueryContext) -> float:
        return float(len(query.query_tokens))


@register_extractor("DocSize")
class DocSize(_FieldExtractor):
    @property
    def name(self) -> str:
        return "DocSize" if self._field is None else f"{self._field}_DocSize"

    def extract(self, doc: DocumentContext, query: QueryContext) -> float:
        return float(self._field_context(doc).doc_size)


@register_extractor("LMDir")
class LMDir(_FieldExtractor):
    """Dirichlet-smoothed query likelihood, summed over query tokens."""

    def __init__(self, mu: float = 1000.0, field: Optional[str] = None):
        super().__init__(field)
        if float(mu) <= 0:
            raise ValueError(f"LMDir mu must be positive, got {mu}")
        self.mu = float(mu)

    @property
    def name(self) -> str:
        return f"LMDir(mu={self.mu:.0f})" if self._field is None else f"{self._field}_LMDir(mu={self.mu:.0f})"

    def extract(self, doc: DocumentContext, query: QueryContext) -> float:
        context = self._field_context(doc)
        total = context.total_term_freq
        if total <= 0:
            return 0.0
        doc_size = context.doc_size
        score = 0.0
        for token in query.query_tokens:
            collect_prob = context.collection_freq(token) / total
            score += (context.term_freq(token) + self.mu * collect_prob) / (self.mu + doc_size)
        return score


@register_extractor("BM25")
class BM25(_FieldExtractor):
    def __init__(self, k1: float = DEFAULT_K1, b: float = DEFAULT_B, field: Optional[str] = None):
        super().__init__(field)
        self.k1 = float(k1)
        self.b = float(b)

    @property
    def name(self) -> str:
        base = f"BM25(k1={self.k1:.2f},b={self.b:.2f})"
        return base if self._field is None else f"{self._field}_{base}"

    def extract(self, doc: DocumentContext, query: QueryContext) -> float:
        context = self._field_context(doc)
        num_docs = doc.num_docs
        if num_docs <= 0:
            return 0.0
        avg_len = context.total_term_freq / num_docs
        score = 0.0
        for token, qtf in query.query_freqs.items():
            score += qtf * bm25_term_score(
                context.term_freq(token), context.doc_freq(token), context.doc_size,
                avg_len, num_docs, k1=self.k1, b=self.b,
            )
        return score


@register_extractor("TFIDF")
class TFIDF(_FieldExtractor):
    @property
    def name(self) -> str:
        return "TFIDF" if self._field is None else f"{self._field}_TFIDF"

    def extract(self, doc: DocumentContext, query: QueryContext) -> float:
        context = self._field_context(doc)
        num_docs = doc.num_docs
        if num_docs <= 0:
            return 0.0
        return sum(
            tfidf_term_score(context.term_freq(t), context.doc_freq(t), num_docs)
            for t in query.query_freqs
        )


@register_extractor("UnorderedQueryPairs")
class UnorderedQueryPairs(FeatureExtractor):
    """
    Counts co-occurrences of every pair of query tokens, in either order, within
    `gap` positions. The value is read back from the query's self-log when an
    upstream ranker already computed it for the document.
    """

    def __init__(self, gap: int = 8, field: str = DEFAULT_FIELD):
        self.gap = int(gap)
        self._field = field

    @property
    def name(self) -> str:
        return f"{self._field}_UnorderedQueryPairs_{self.gap}"

    @property
    def field(self) -> str:
        return self._field

    def extract(self, doc: DocumentContext, query: QueryContext) -> float:
        context = doc.field(self._field)
        count = 0
        for left, right in query.query_pairs():
            count += context.count_bigram(left, right, self.gap)
            count += context.count_bigram(right, left, self.gap)
        return float(count)

    def post_edit(self, doc: DocumentContext, query: QueryContext, value: float) -> float:
        logged = query.self_log(doc.doc_id, self.name)
        return value if logged is None else float(logged)


@register_extractor("OrderedQueryPairs")
class OrderedQueryPairs(FeatureExtractor):
    """Like UnorderedQueryPairs but the earlier query token must come first in the text."""

    def __init__(self, gap: int = 8, field: str = DEFAULT_FIELD):
        self.gap = int(gap)
        self._field = field

    @property
    def name(self) -> str:
        return f"{self._field}_OrderedQueryPairs_{self.gap}"

    @property
    def field(self) -> str:
        return self._field

    def extract(self, doc: DocumentContext, query: QueryContext) -> float:
        context = doc.field(self._field)
        return float(sum(context.count_bigram(a, b, self.gap) for a, b in query.query_pairs()))
