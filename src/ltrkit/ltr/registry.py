"""
Per-query feature-extraction jobs.

    registry = ExtractionJobRegistry(index, chain, num_workers=4)
    registry.submit("q1", ["D1", "D2"], {"analyzed": ["apple", "pie"]})
    ...                                   # submit more, never blocks
    rows = registry.retrieve("q1")        # blocks until q1 is done, then forgets it

A qid holds at most one job at a time, and its result can be taken exactly once.
"""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from time import perf_counter
from typing import Any, Optional

from ltrkit.errors import (
    DocumentNotFoundError,
    DuplicateJobError,
    FeatureExtractionError,
    InvalidFeatureValueError,
    StatisticsProviderError,
    UnknownJobError,
)
from ltrkit.index.stats import TermStatisticsProvider
from ltrkit.ltr.chain import ExtractorChain, chain_from_config
from ltrkit.ltr.context import DocumentContext, QueryContext
from ltrkit.ltr.models import FeatureRow, JobRequest, dump_rows, load_rows
from ltrkit.perf.simple_perf import perf_indicator
from ltrkit.utils.config import Config

logger = logging.getLogger(__name__)


def run_job(
    provider: TermStatisticsProvider,
    chain: ExtractorChain,
    query: QueryContext,
    doc_ids: list[str],
    debug: bool = False,
) -> str:
    """
    Scores every document of one job, in input order, and returns the JSON rows.
    A missing document fails the whole job; nothing partial is returned. Every error
    raised from here names the qid.
    """
    t0 = perf_counter()
    rows: list[FeatureRow] = []
    doc_id: Optional[str] = None
    try:
        doc_ctx = DocumentContext(provider, chain.fields())
        for doc_id in doc_ids:
            handle = provider.resolve_document(doc_id)
            if handle is None:
                raise DocumentNotFoundError(doc_id, qid=query.qid)
            doc_ctx.update_doc(doc_id, handle)
            if debug:
                features, timings = chain.evaluate_timed(doc_ctx, query)
                rows.append(FeatureRow(doc_id=doc_id, features=features, debug_timings_ns=timings))
            else:
                rows.append(FeatureRow(doc_id=doc_id, features=chain.evaluate(doc_ctx, query)))
    except InvalidFeatureValueError as e:
        raise InvalidFeatureValueError(e.name, e.value, doc_id=e.doc_id, qid=query.qid) from e
    except (StatisticsProviderError, OSError) as e:
        raise StatisticsProviderError(f"Feature extraction failed for qid {query.qid!r}: {e}") from e
    except (ArithmeticError, ValueError, LookupError, TypeError) as e:
        raise FeatureExtractionError(query.qid, doc_id, e) from e

    logger.debug(f"[{query.qid}] {len(rows)} docs scored in {(perf_counter() - t0) * 1000:.2f} ms")
    return dump_rows(rows)


class ExtractionJobRegistry:
    def __init__(self, provider: TermStatisticsProvider, chain: ExtractorChain, num_workers: int = 1):
        if num_workers < 1:
            raise ValueError("num_workers must be >= 1")
        self.provider = provider
        self.chain = chain
        self.num_workers = num_workers
        self._pool = ThreadPoolExecutor(max_workers=num_workers, thread_name_prefix="ltr-job")
        self._tasks: dict[str, Future] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, provider: TermStatisticsProvider, cfg: Optional[Config] = None) -> "ExtractionJobRegistry":
        cfg = cfg or Config(load=True)
        num_workers = int(cfg.LTR.NUM_WORKERS) if cfg.LTR.NUM_WORKERS else 1
        return cls(provider, chain_from_config(cfg), num_workers=num_workers)

    def names(self) -> list[str]:
        return self.chain.names()

    def __contains__(self, qid: str) -> bool:
        with self._lock:
            return qid in self._tasks

    def submit(
        self,
        qid: str,
        doc_ids: list[str],
        query_payload: Optional[dict[str, Any]] = None,
        debug: bool = False,
    ) -> str:
        query = QueryContext.from_payload(qid, query_payload or {})
        with self._lock:
            if qid in self._tasks:
                raise DuplicateJobError(qid)
            local_chain = self.chain.duplicate()
            self._tasks[qid] = self._pool.submit(run_job, self.provider, local_chain, query, list(doc_ids), debug)
        logger.debug(f"Submitted qid {qid} with {len(doc_ids)} docs (debug={debug})")
        return qid

    def lazy_extract(self, json_input: str) -> str:
        """Submits a wire payload `{qid, docIds, analyzed, selfLog?}`; returns the qid."""
        return self._submit_request(json_input, debug=False)

    def debug_extract(self, json_input: str) -> str:
        """Like `lazy_extract`, with per-extractor timings added to every row."""
        return self._submit_request(json_input, debug=True)

    def _submit_request(self, json_input: str, debug: bool) -> str:
        request = JobRequest.model_validate(json.loads(json_input))
        return self.submit(request.qid, request.doc_ids, request.payload(), debug=debug)

    def _take(self, qid: str) -> Future:
        with self._lock:
            fut = self._tasks.pop(qid, None)
        if fut is None:
            raise UnknownJobError(qid)
        return fut

    def get_result(self, qid: str) -> str:
        """Blocks until the job for qid is done and returns its JSON rows."""
        return self._take(qid).result()

    def retrieve(self, qid: str) -> list[FeatureRow]:
        return load_rows(self.get_result(qid))

    @perf_indicator("extracted", "docs")
    def extract(self, qid: str, doc_ids: list[str], query_tokens: list[str]) -> list[FeatureRow]:
        self.submit(qid, doc_ids, {"qid": qid, "docIds": list(doc_ids), "analyzed": list(query_tokens)})
        return self.retrieve(qid)

    def close(self) -> None:
        self._pool.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
