from __future__ import annotations

import math
import time
from typing import Any, Iterable, Iterator, Optional

import numpy as np

from ltrkit.errors import DuplicateFeatureNameError, InvalidFeatureValueError
from ltrkit.ltr.context import DocumentContext, QueryContext
from ltrkit.ltr.extractors import DEFAULT_FIELD, FeatureExtractor, create_extractor
from ltrkit.utils.config import Config


class ExtractorChain:
    """
    Ordered set of extractors. Registration order is the feature-vector column order;
    consumers address columns by position and by `names()`, so keep it stable.
    """

    def __init__(self, extractors: Iterable[FeatureExtractor] = ()):
        self._extractors: list[FeatureExtractor] = []
        self._names: set[str] = set()
        for e in extractors:
            self.add(e)

    def add(self, extractor: FeatureExtractor) -> "ExtractorChain":
        name = extractor.name
        if name in self._names:
            raise DuplicateFeatureNameError(name)
        self._names.add(name)
        self._extractors.append(extractor)
        return self

    def names(self) -> list[str]:
        return [e.name for e in self._extractors]

    def fields(self) -> set[str]:
        """Index fields the extractors read; field-less extractors read the default one."""
        return {e.field or DEFAULT_FIELD for e in self._extractors}

    def duplicate(self) -> "ExtractorChain":
        return ExtractorChain(e.duplicate() for e in self._extractors)

    def __len__(self) -> int:
        return len(self._extractors)

    def __iter__(self) -> Iterator[FeatureExtractor]:
        return iter(self._extractors)

    def _value(self, extractor: FeatureExtractor, doc: DocumentContext, query: QueryContext) -> float:
        value = float(extractor.post_edit(doc, query, extractor.extract(doc, query)))
        if not math.isfinite(value):
            raise InvalidFeatureValueError(extractor.name, value, doc.doc_id)
        return value

    def evaluate(self, doc: DocumentContext, query: QueryContext) -> list[float]:
        return [self._value(e, doc, query) for e in self._extractors]

    def evaluate_timed(self, doc: DocumentContext, query: QueryContext) -> tuple[list[float], list[int]]:
        """Feature values plus the wall-clock nanoseconds spent in each extractor."""
        values: list[float] = []
        timings: list[int] = []
        for e in self._extractors:
            start = time.perf_counter_ns()
            values.append(self._value(e, doc, query))
            timings.append(time.perf_counter_ns() - start)
        return values, timings

    def extract_matrix(self, doc: DocumentContext, query: QueryContext, handles: Iterable[tuple[str, Any]]) -> np.ndarray:
        """Stacks `evaluate` over `(doc_id, handle)` pairs into an [N, F] float32 matrix."""
        rows = []
        for doc_id, handle in handles:
            doc.update_doc(doc_id, handle)
            rows.append(self.evaluate(doc, query))
        return np.asarray(rows, dtype=np.float32).reshape(len(rows), len(self))


def build_chain(specs: Iterable[dict[str, Any]]) -> ExtractorChain:
    """
    Builds a chain from `[{name, field?, parameters?}]`, where `name` selects a
    registered extractor kind. Duplicate column names are rejected here, before any
    job can run.
    """
    chain = ExtractorChain()
    for spec in specs:
        params = dict(spec.get("parameters") or {})
        chain.add(create_extractor(spec["name"], field=spec.get("field"), **params))
    return chain


def chain_from_config(cfg: Optional[Config] = None) -> ExtractorChain:
    cfg = cfg or Config(load=True)
    return build_chain(cfg.LTR.EXTRACTORS or [])
