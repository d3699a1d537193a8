import unittest

from fastapi.testclient import TestClient

from ltrkit.errors import StatisticsProviderError
from ltrkit.index.memory import MemoryIndex
from ltrkit.ltr.chain import ExtractorChain
from ltrkit.ltr.extractors import MatchingTermCount, QueryLength, SumMatchingTF
from ltrkit.ltr.registry import ExtractionJobRegistry
from ltrkit.ltr.service import create_app


class UnreadableIndex(MemoryIndex):
    def term_frequency(self, handle, field, term):
        raise StatisticsProviderError("postings segment unreadable")


class TestFeatureService(unittest.TestCase):
    def setUp(self):
        index = MemoryIndex()
        index.add_document("d1", {"contents": "apple banana apple"})
        index.add_document("d2", {"contents": "banana cherry"})
        chain = ExtractorChain([QueryLength(), SumMatchingTF(), MatchingTermCount()])
        self.registry = ExtractionJobRegistry(index, chain, num_workers=2)
        self.client = TestClient(create_app(registry=self.registry))
        self.client.__enter__()

    def tearDown(self):
        self.client.__exit__(None, None, None)
        self.registry.close()

    def test_health_and_features(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok", "registry_loaded": True})
        self.assertEqual(self.client.get("/features").json(), ["QueryLength", "SumMatchingTF", "MatchingTermCount"])

    def test_submit_then_retrieve(self):
        body = {"qid": "q1", "docIds": ["d1", "d2"], "analyzed": ["apple", "cherry"]}
        resp = self.client.post("/jobs", json=body)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"qid": "q1"})

        resp = self.client.get("/jobs/q1")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), [
            {"docId": "d1", "features": [2.0, 2.0, 1.0]},
            {"docId": "d2", "features": [2.0, 1.0, 1.0]},
        ])

    def test_duplicate_submit_conflicts(self):
        body = {"qid": "q1", "docIds": ["d1"], "analyzed": ["apple"]}
        self.assertEqual(self.client.post("/jobs", json=body).status_code, 200)
        self.assertEqual(self.client.post("/jobs", json=body).status_code, 409)

    def test_unknown_job_is_404(self):
        self.assertEqual(self.client.get("/jobs/nope").status_code, 404)

    def test_missing_document_is_422(self):
        body = {"qid": "q2", "docIds": ["d1", "ghost"], "analyzed": ["apple"]}
        self.client.post("/jobs", json=body)
        resp = self.client.get("/jobs/q2")
        self.assertEqual(resp.status_code, 422)
        self.assertIn("ghost", resp.json()["detail"])

    def test_debug_rows_include_timings(self):
        body = {"qid": "q3", "docIds": ["d2"], "analyzed": ["banana"]}
        self.client.post("/jobs", params={"debug": "true"}, json=body)
        row = self.client.get("/jobs/q3").json()[0]
        self.assertEqual(len(row["debugTimingsNs"]), 3)

    def test_bad_payload_is_rejected(self):
        self.assertEqual(self.client.post("/jobs", json={"docIds": ["d1"]}).status_code, 422)


class TestStatisticsFailure(unittest.TestCase):
    def test_statistics_failure_is_reported_with_detail(self):
        index = UnreadableIndex()
        index.add_document("d1", {"contents": "apple pie"})
        registry = ExtractionJobRegistry(index, ExtractorChain([SumMatchingTF()]))
        try:
            with TestClient(create_app(registry=registry)) as client:
                client.post("/jobs", json={"qid": "q1", "docIds": ["d1"], "analyzed": ["apple"]})
                resp = client.get("/jobs/q1")
                self.assertEqual(resp.status_code, 503)
                self.assertIn("q1", resp.json()["detail"])
                self.assertIn("postings segment unreadable", resp.json()["detail"])
                self.assertEqual(client.get("/jobs/q1").status_code, 404)
        finally:
            registry.close()


if __name__ == "__main__":
    unittest.main()
