from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from ltrkit.errors import StatisticsProviderError
from ltrkit.feedback.smm import RelevanceModelEstimator
from ltrkit.feedback.vector import SparseTermVector
from ltrkit.index.stats import TermStatisticsProvider
from ltrkit.index.tokenization import TokenizerAbstract, get_tokenizer
from ltrkit.query.weighted import WeightedQuery
from ltrkit.ranking.utils import ScoredDocument
from ltrkit.utils.config import Config

logger = logging.getLogger(__name__)


class Searcher(Protocol):
    def search(self, query: WeightedQuery, hits: int = 1000) -> list[ScoredDocument]:
        ...


@dataclass
class RerankerContext:
    query_id: str
    query_text: str
    searcher: Searcher
    hits: int = 1000
    use_rf: bool = False


class SMMReranker:
    """
    Pseudo-relevance feedback with the simple mixture model.

    The estimated relevance model is interpolated with the original query, turned into
    a boosted disjunctive query over `field`, and run again through the searcher.
    """

    def __init__(
        self,
        provider: TermStatisticsProvider,
        analyzer: Optional[TokenizerAbstract] = None,
        field: str = "contents",
        fb_terms: int = 10,
        fb_docs: int = 10,
        original_query_weight: float = 0.5,
        lambda_: float = 0.1,
        output_query: bool = False,
    ):
        self.analyzer = analyzer or get_tokenizer()
        self.field = field
        self.fb_terms = fb_terms
        self.fb_docs = fb_docs
        self.original_query_weight = original_query_weight
        self.lambda_ = lambda_
        self.output_query = output_query
        self.estimator = RelevanceModelEstimator(
            provider, field, fb_docs=fb_docs, fb_terms=fb_terms, lambda_=lambda_
        )

    @classmethod
    def from_config(cls, provider: TermStatisticsProvider, cfg: Optional[Config] = None) -> "SMMReranker":
        cfg = cfg or Config(load=True)
        smm = cfg.SMM
        return cls(
            provider,
            analyzer=get_tokenizer(cfg),
            field=smm.FIELD or "contents",
            fb_terms=int(smm.FB_TERMS),
            fb_docs=int(smm.FB_DOCS),
            original_query_weight=float(smm.ORIGINAL_QUERY_WEIGHT),
            lambda_=float(smm.LAMBDA),
            output_query=bool(smm.OUTPUT_QUERY),
        )

    def expand(self, docs: Sequence[ScoredDocument], query_text: str, use_rf: bool = False) -> SparseTermVector:
        qfv = SparseTermVector.from_terms(self.analyzer.tokenize(query_text)).normalize_l1()
        rm = self.estimator.estimate(docs, use_rf=use_rf)
        return SparseTermVector.interpolate(qfv, rm, self.original_query_weight)

    def feedback_query(self, docs: Sequence[ScoredDocument], query_text: str, use_rf: bool = False) -> WeightedQuery:
        return WeightedQuery.from_vector(self.field, self.expand(docs, query_text, use_rf=use_rf))

    def rerank(
        self,
        docs: Sequence[ScoredDocument],
        context: RerankerContext,
        feedback_query: Optional[WeightedQuery] = None,
    ) -> list[ScoredDocument]:
        """Runs the feedback query; pass `feedback_query` when it was already built for `docs`."""
        if feedback_query is None:
            feedback_query = self.feedback_query(docs, context.query_text, use_rf=context.use_rf)

        if self.output_query:
            logger.info(f"QID: {context.query_id}")
            logger.info(f"Original Query: {context.query_text}")
            logger.info(f"Running new query: {feedback_query}")

        try:
            return context.searcher.search(feedback_query, context.hits)
        except StatisticsProviderError as e:
            logger.error(f"Feedback search failed for qid {context.query_id}: {e}")
            return list(docs)

    def tag(self) -> str:
        return (
            f"smm(fbDocs={self.fb_docs},fbTerms={self.fb_terms},"
            f"originalQueryWeight:{self.original_query_weight},lambda:{self.lambda_})"
        )
