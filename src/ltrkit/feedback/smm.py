"""
Simple mixture model (SMM) relevance-model estimation.

The feedback documents are assumed to be generated by a two-component mixture: a
topical foreground model `f` and the corpus background model. With the background
weight `lambda_` fixed, `f` is fit by EM on the pooled term counts:

    t(w)  = (1 - lambda_) f(w) / ((1 - lambda_) f(w) + lambda_ p(w|C))
    f'(w) ∝ c(w; F) t(w)

and the fit log-likelihood is `sum_w c(w; F) log((1 - lambda_) f(w) + lambda_ p(w|C))`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ltrkit.errors import StatisticsProviderError
from ltrkit.feedback.vector import SparseTermVector
from ltrkit.index.stats import TermStatisticsProvider
from ltrkit.ranking.utils import ScoredDocument

logger = logging.getLogger(__name__)

MIN_TERM_LEN = 2
MAX_TERM_LEN = 20
MAX_DF_RATIO = 0.1
_TERM_RE = re.compile(r"[a-z0-9]+")
_NUMERIC_RE = re.compile(r"[0-9]+")

DEFAULT_TOLERANCE = 1e-6
DEFAULT_MAX_ITERATIONS = 1000


@dataclass
class EMFit:
    vector: SparseTermVector
    iterations: int
    log_likelihood: float
    converged: bool


def _empty_fit() -> EMFit:
    return EMFit(SparseTermVector(), 0, 0.0, True)


class RelevanceModelEstimator:
    def __init__(
        self,
        provider: TermStatisticsProvider,
        field: str,
        fb_docs: int = 10,
        fb_terms: int = 10,
        lambda_: float = 0.1,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        if not 0.0 < lambda_ < 1.0:
            raise ValueError(f"lambda_ must be in (0, 1), got {lambda_}")
        self.provider = provider
        self.field = field
        self.fb_docs = fb_docs
        self.fb_terms = fb_terms
        self.lambda_ = lambda_
        self.tolerance = tolerance
        self.max_iterations = max_iterations

    def estimate(self, docs: Sequence[ScoredDocument], use_rf: bool = False) -> SparseTermVector:
        return self.fit(docs, use_rf=use_rf).vector

    def fit(self, docs: Sequence[ScoredDocument], use_rf: bool = False) -> EMFit:
        try:
            rel_freq = self._pool_term_counts(docs, use_rf)
            if not rel_freq:
                return _empty_fit()
            terms = sorted(rel_freq)
            bg = self._background(terms)
        except (StatisticsProviderError, OSError) as e:
            logger.warning(f"Relevance model estimation aborted: {e}")
            return _empty_fit()

        counts = np.array([rel_freq[t] for t in terms], dtype=np.float64)
        return self._run_em(terms, counts, bg)

    def keep_term(self, term: str) -> bool:
        """Vocabulary filter applied before the collection-frequency check."""
        if len(term) < MIN_TERM_LEN or len(term) > MAX_TERM_LEN:
            return False
        if not _TERM_RE.fullmatch(term):
            return False
        return _NUMERIC_RE.fullmatch(term) is None

    # ------------- internals -------------

    def _pool_term_counts(self, docs: Sequence[ScoredDocument], use_rf: bool) -> dict[str, float]:
        numdocs = len(docs) if use_rf else min(len(docs), self.fb_docs)
        num_index_docs = self.provider.total_document_count()
        if num_index_docs <= 0:
            return {}

        df_ratio_ok: dict[str, bool] = {}
        rel_freq: dict[str, float] = {}
        for doc in docs[:numdocs]:
            if use_rf and doc.score <= 0.0:
                continue
            handle = doc.handle if doc.handle is not None else self.provider.resolve_document(doc.doc_id)
            if handle is None:
                raise StatisticsProviderError(f"No term vector for document {doc.doc_id}")
            for term, freq in self.provider.term_vector(handle, self.field):
                if not self.keep_term(term):
                    continue
                ok = df_ratio_ok.get(term)
                if ok is None:
                    df = self.provider.document_frequency(self.field, term)
                    ok = df_ratio_ok[term] = (df / num_index_docs) <= MAX_DF_RATIO
                if not ok:
                    continue
                rel_freq[term] = rel_freq.get(term, 0.0) + float(freq)
        return rel_freq

    def _background(self, terms: list[str]) -> np.ndarray:
        total = self.provider.corpus_total_term_frequency(self.field)
        if total <= 0:
            raise StatisticsProviderError(f"Field {self.field} has no terms")
        return np.array(
            [self.provider.collection_frequency(self.field, t) / total for t in terms],
            dtype=np.float64,
        )

    def _log_likelihood(self, counts: np.ndarray, f: np.ndarray, bg: np.ndarray) -> float:
        mix = (1.0 - self.lambda_) * f + self.lambda_ * bg
        return float(np.sum(counts * np.log(mix)))

    def _run_em(self, terms: list[str], counts: np.ndarray, bg: np.ndarray) -> EMFit:
        lam = self.lambda_
        f = counts / counts.sum()
        log_lik = self._log_likelihood(counts, f, bg)

        num_iter = 0
        while True:
            fg = (1.0 - lam) * f
            t_w = fg / (fg + lam * bg)
            p_w = counts * t_w
            norm = p_w.sum()
            f = p_w / norm if norm > 0 else p_w

            pre_log_lik = log_lik
            log_lik = self._log_likelihood(counts, f, bg)
            num_iter += 1
            # Stop on convergence or once the iteration count exceeds the cap.
            if abs(pre_log_lik - log_lik) <= self.tolerance or num_iter > self.max_iterations:
                break

        converged = abs(pre_log_lik - log_lik) <= self.tolerance
        if not converged:
            logger.debug(f"SMM stopped after {num_iter} iterations without converging")

        vector = SparseTermVector({t: float(w) for t, w in zip(terms, f)})
        vector.prune(self.fb_terms)
        vector.normalize_l1()
        return EMFit(vector, num_iter, log_lik, converged)
