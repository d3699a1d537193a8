import json
import math
import threading
import unittest

from ltrkit.errors import (
    DocumentNotFoundError,
    DuplicateJobError,
    FeatureExtractionError,
    InvalidFeatureValueError,
    UnknownJobError,
)
from ltrkit.index.memory import MemoryIndex
from ltrkit.ltr.chain import ExtractorChain
from ltrkit.ltr.extractors import FeatureExtractor, SumMatchingTF
from ltrkit.ltr.registry import ExtractionJobRegistry


class ConstantFeature(FeatureExtractor):
    @property
    def name(self):
        return "Constant"

    def extract(self, doc, query):
        return 1.0


class NanFeature(FeatureExtractor):
    @property
    def name(self):
        return "Nan"

    def extract(self, doc, query):
        return math.nan


class RatioFeature(FeatureExtractor):
    @property
    def name(self):
        return "Ratio"

    def extract(self, doc, query):
        return 1.0 / len(query.query_tokens)


class GatedFeature(FeatureExtractor):
    """Blocks every extraction until the shared gate is opened."""

    def __init__(self, gate):
        self.gate = gate
        self.seen = []

    @property
    def name(self):
        return "Gated"

    def extract(self, doc, query):
        self.gate.wait(timeout=5)
        self.seen.append(doc.doc_id)
        return 0.0

    def duplicate(self):
        return GatedFeature(self.gate)


def fruit_index():
    index = MemoryIndex()
    index.add_document("d1", {"contents": "apple banana apple"})
    index.add_document("d2", {"contents": "banana cherry"})
    return index


class TestExtractionJobRegistry(unittest.TestCase):
    def setUp(self):
        self.index = fruit_index()
        self.chain = ExtractorChain([ConstantFeature(), SumMatchingTF()])
        self.registry = ExtractionJobRegistry(self.index, self.chain, num_workers=2)

    def tearDown(self):
        self.registry.close()

    def test_submit_and_retrieve(self):
        self.registry.submit("q1", ["d1", "d2"], {"analyzed": ["apple"]})
        rows = self.registry.retrieve("q1")
        self.assertEqual([r.doc_id for r in rows], ["d1", "d2"])
        self.assertEqual([r.features for r in rows], [[1.0, 2.0], [1.0, 0.0]])
        self.assertTrue(all(r.debug_timings_ns is None for r in rows))
        self.assertEqual(self.registry.names(), ["Constant", "SumMatchingTF"])

    def test_duplicate_submit_is_rejected(self):
        self.registry.submit("q1", ["d1"], {"analyzed": ["apple"]})
        with self.assertRaises(DuplicateJobError):
            self.registry.submit("q1", ["d2"], {"analyzed": ["cherry"]})
        self.assertEqual(self.registry.retrieve("q1")[0].doc_id, "d1")

    def test_retrieve_unknown_qid(self):
        with self.assertRaises(UnknownJobError):
            self.registry.retrieve("nope")

    def test_result_is_taken_once(self):
        self.registry.submit("q1", ["d1"], {"analyzed": ["apple"]})
        self.registry.retrieve("q1")
        self.assertNotIn("q1", self.registry)
        with self.assertRaises(UnknownJobError):
            self.registry.retrieve("q1")
        # the qid can be reused once the previous result was taken
        self.registry.submit("q1", ["d2"], {"analyzed": ["cherry"]})
        self.assertEqual(self.registry.retrieve("q1")[0].features, [1.0, 1.0])

    def test_missing_document_fails_the_job(self):
        self.registry.submit("q1", ["d1", "missing", "d2"], {"analyzed": ["apple"]})
        with self.assertRaises(DocumentNotFoundError) as ctx:
            self.registry.retrieve("q1")
        self.assertEqual(ctx.exception.doc_id, "missing")
        self.assertEqual(ctx.exception.qid, "q1")
        self.assertNotIn("q1", self.registry)

    def test_failed_job_does_not_affect_other_jobs(self):
        self.registry.submit("bad", ["d1", "missing"], {"analyzed": ["apple"]})
        self.registry.submit("good", ["d2", "d1"], {"analyzed": ["banana"]})
        self.registry.submit("also_good", ["d1"], {"analyzed": ["apple"]})

        rows = self.registry.retrieve("good")
        self.assertEqual([r.features for r in rows], [[1.0, 1.0], [1.0, 1.0]])
        with self.assertRaises(DocumentNotFoundError):
            self.registry.retrieve("bad")
        self.assertEqual(self.registry.retrieve("also_good")[0].features, [1.0, 2.0])

    def test_debug_rows_carry_timings(self):
        self.registry.submit("q1", ["d1", "d2"], {"analyzed": ["apple"]}, debug=True)
        rows = self.registry.retrieve("q1")
        for row in rows:
            self.assertEqual(len(row.debug_timings_ns), len(self.chain))

    def test_lazy_extract_from_json(self):
        payload = json.dumps({"qid": "q7", "docIds": ["d2"], "analyzed": ["banana", "cherry"]})
        self.assertEqual(self.registry.lazy_extract(payload), "q7")
        result = json.loads(self.registry.get_result("q7"))
        self.assertEqual(result, [{"docId": "d2", "features": [1.0, 2.0]}])

    def test_debug_extract_from_json(self):
        payload = json.dumps({"qid": "q8", "docIds": ["d1"], "analyzed": ["apple"]})
        self.registry.debug_extract(payload)
        result = json.loads(self.registry.get_result("q8"))
        self.assertEqual(len(result[0]["debugTimingsNs"]), 2)

    def test_extract_convenience(self):
        rows = self.registry.extract("q9", ["d1"], ["apple", "banana"])
        self.assertEqual(rows[0].features, [1.0, 3.0])

    def test_many_concurrent_jobs(self):
        qids = [f"q{i}" for i in range(50)]
        for i, qid in enumerate(qids):
            docs = ["d1", "d2"] if i % 2 == 0 else ["d2"]
            self.registry.submit(qid, docs, {"analyzed": ["banana"]})
        for i, qid in enumerate(qids):
            rows = self.registry.retrieve(qid)
            expected = [[1.0, 1.0], [1.0, 1.0]] if i % 2 == 0 else [[1.0, 1.0]]
            self.assertEqual([r.features for r in rows], expected)


class TestJobErrorsNameTheQuery(unittest.TestCase):
    def test_non_finite_value_carries_qid(self):
        with ExtractionJobRegistry(fruit_index(), ExtractorChain([NanFeature()])) as registry:
            registry.submit("q42", ["d1"], {"analyzed": ["apple"]})
            with self.assertRaises(InvalidFeatureValueError) as ctx:
                registry.retrieve("q42")
        self.assertEqual(ctx.exception.qid, "q42")
        self.assertEqual(ctx.exception.doc_id, "d1")
        self.assertIn("q42", str(ctx.exception))

    def test_extractor_crash_carries_qid(self):
        with ExtractionJobRegistry(fruit_index(), ExtractorChain([RatioFeature()])) as registry:
            registry.submit("q43", ["d2"], {"analyzed": []})
            with self.assertRaises(FeatureExtractionError) as ctx:
                registry.retrieve("q43")
        self.assertEqual(ctx.exception.qid, "q43")
        self.assertEqual(ctx.exception.doc_id, "d2")
        self.assertIsInstance(ctx.exception.__cause__, ZeroDivisionError)
        self.assertIn("ZeroDivisionError", str(ctx.exception))


class TestBlockingRetrieve(unittest.TestCase):
    def test_retrieve_waits_for_running_job(self):
        gate = threading.Event()
        template = GatedFeature(gate)
        registry = ExtractionJobRegistry(fruit_index(), ExtractorChain([template]), num_workers=1)
        try:
            registry.submit("q1", ["d1", "d2"], {"analyzed": []})
            results = []
            waiter = threading.Thread(target=lambda: results.append(registry.retrieve("q1")))
            waiter.start()
            waiter.join(timeout=0.2)
            self.assertTrue(waiter.is_alive())
            self.assertEqual(results, [])

            gate.set()
            waiter.join(timeout=5)
            self.assertFalse(waiter.is_alive())
            self.assertEqual([r.doc_id for r in results[0]], ["d1", "d2"])
            # the job ran on its own copy of the extractor
            self.assertEqual(template.seen, [])
        finally:
            gate.set()
            registry.close()

    def test_rejects_zero_workers(self):
        with self.assertRaises(ValueError):
            ExtractionJobRegistry(fruit_index(), ExtractorChain(), num_workers=0)


if __name__ == "__main__":
    unittest.main()
