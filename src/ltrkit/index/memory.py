"""
In-memory term statistics for small corpora and tests.

Documents are analyzed once at `add_document` time; every statistic the feature
extractors and the relevance-model estimator need is then a dict lookup. Handles are
the running integer position of the document in insertion order.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from pathlib import Path
from typing import Iterator, Optional

from ltrkit.index.stats import TermStatisticsProvider
from ltrkit.index.tokenization import TokenizerAbstract, get_tokenizer
from ltrkit.query.weighted import WeightedQuery
from ltrkit.ranking.bm25 import DEFAULT_B, DEFAULT_K1, bm25_term_score
from ltrkit.ranking.utils import ScoredDocument, sort_by_score
from ltrkit.utils.config import Config

logger = logging.getLogger(__name__)

DEFAULT_FIELD = "contents"


class _StoredDoc:
    __slots__ = ("doc_id", "positions", "lengths")

    def __init__(self, doc_id: str):
        self.doc_id = doc_id
        # field -> term -> positions
        self.positions: dict[str, dict[str, list[int]]] = {}
        self.lengths: dict[str, int] = {}


class MemoryIndex(TermStatisticsProvider):
    """
    Usage:
        index = MemoryIndex()
        index.add_document("D1", {"contents": "apple pie recipe"})
        handle = index.resolve_document("D1")
        index.term_frequency(handle, "contents", "apple")  # 1
    """

    def __init__(
        self,
        tokenizer: Optional[TokenizerAbstract] = None,
        k1: float = DEFAULT_K1,
        b: float = DEFAULT_B,
    ):
        self.tokenizer = tokenizer or get_tokenizer()
        self.k1 = k1
        self.b = b
        self._docs: list[_StoredDoc] = []
        self._ids: dict[str, int] = {}
        self._cf: dict[str, Counter] = defaultdict(Counter)
        self._df: dict[str, Counter] = defaultdict(Counter)
        self._total_tf: Counter = Counter()

    @classmethod
    def from_config(cls, cfg: Optional[Config] = None) -> "MemoryIndex":
        cfg = cfg or Config(load=True)
        k1 = float(cfg.BM25.K1) if cfg.BM25 and cfg.BM25.K1 is not None else DEFAULT_K1
        b = float(cfg.BM25.B) if cfg.BM25 and cfg.BM25.B is not None else DEFAULT_B
        return cls(tokenizer=get_tokenizer(cfg), k1=k1, b=b)

    @classmethod
    def from_tsv(cls, path: str | Path, cfg: Optional[Config] = None, field: str = DEFAULT_FIELD) -> "MemoryIndex":
        """Loads `doc_id<TAB>text` lines; any extra columns are joined into the text."""
        index = cls.from_config(cfg)
        with Path(path).open("r", encoding="utf-8") as f:
            for line in f:
                parts = line.rstrip("\n").split("\t")
                if len(parts) < 2:
                    continue
                index.add_document(parts[0], {field: " ".join(parts[1:])})
        logger.info(f"Loaded {len(index)} documents from {path}")
        return index

    def add_document(self, doc_id: str, fields: dict[str, str]) -> int:
        if doc_id in self._ids:
            raise ValueError(f"Duplicate document id {doc_id}")
        return self.add_analyzed(doc_id, {f: self.tokenizer.tokenize(text) for f, text in fields.items()})

    def add_analyzed(self, doc_id: str, fields: dict[str, list[str]]) -> int:
        """Adds a document whose fields are already token lists."""
        if doc_id in self._ids:
            raise ValueError(f"Duplicate document id {doc_id}")
        doc = _StoredDoc(doc_id)
        for field_name, tokens in fields.items():
            pos: dict[str, list[int]] = defaultdict(list)
            for i, tok in enumerate(tokens):
                pos[tok].append(i)
            doc.positions[field_name] = dict(pos)
            doc.lengths[field_name] = len(tokens)
            self._total_tf[field_name] += len(tokens)
            for tok, p in pos.items():
                self._cf[field_name][tok] += len(p)
                self._df[field_name][tok] += 1

        handle = len(self._docs)
        self._docs.append(doc)
        self._ids[doc_id] = handle
        return handle

    def __len__(self) -> int:
        return len(self._docs)

    def external_id(self, handle: int) -> str:
        return self._docs[handle].doc_id

    # ------------- TermStatisticsProvider -------------

    def resolve_document(self, external_id: str) -> Optional[int]:
        return self._ids.get(external_id)

    def term_frequency(self, handle: int, field: str, term: str) -> int:
        return len(self._docs[handle].positions.get(field, {}).get(term, ()))

    def collection_frequency(self, field: str, term: str) -> int:
        return self._cf[field][term]

    def document_length(self, handle: int, field: str) -> int:
        return self._docs[handle].lengths.get(field, 0)

    def corpus_total_term_frequency(self, field: str) -> int:
        return self._total_tf[field]

    def document_frequency(self, field: str, term: str) -> int:
        return self._df[field][term]

    def total_document_count(self) -> int:
        return len(self._docs)

    def term_vector(self, handle: int, field: str) -> Iterator[tuple[str, int]]:
        positions = self._docs[handle].positions.get(field, {})
        for term in sorted(positions):
            yield term, len(positions[term])

    def term_positions(self, handle: int, field: str) -> dict[str, list[int]]:
        return self._docs[handle].positions.get(field, {})

    # ------------- retrieval -------------

    def search(self, query: WeightedQuery, hits: int = 1000) -> list[ScoredDocument]:
        """Scores every document containing a query term with boosted BM25."""
        num_docs = len(self._docs)
        if num_docs == 0 or hits <= 0:
            return []
        avg_len = self._total_tf[query.field] / num_docs

        scores: dict[int, float] = defaultdict(float)
        for term, boost in query.clauses:
            df = self._df[query.field][term]
            if df == 0:
                continue
            for handle, doc in enumerate(self._docs):
                tf = len(doc.positions.get(query.field, {}).get(term, ()))
                if tf == 0:
                    continue
                scores[handle] += boost * bm25_term_score(
                    tf, df, doc.lengths[query.field], avg_len, num_docs, k1=self.k1, b=self.b
                )

        docs = [ScoredDocument(self._docs[h].doc_id, s, handle=h) for h, s in scores.items()]
        return sort_by_score(docs)[:hits]

    def search_text(self, text: str, field: str = DEFAULT_FIELD, hits: int = 1000) -> list[ScoredDocument]:
        tokens = self.tokenizer.tokenize(text)
        weights = Counter(tokens)
        return self.search(WeightedQuery(field, tuple((t, float(c)) for t, c in weights.items())), hits)
