import json
import os
import tempfile
import unittest

from ltrkit.index.memory import MemoryIndex
from ltrkit.query.weighted import WeightedQuery
from ltrkit.topics import read_json_topics


class TestMemoryIndex(unittest.TestCase):
    def setUp(self):
        self.index = MemoryIndex()
        self.index.add_document("D1", {"contents": "Apple pie, apple crumble."})
        self.index.add_document("D2", {"contents": "The cherry pie"})

    def test_statistics(self):
        h1 = self.index.resolve_document("D1")
        self.assertEqual(self.index.term_frequency(h1, "contents", "apple"), 2)
        self.assertEqual(self.index.document_length(h1, "contents"), 4)
        self.assertEqual(self.index.collection_frequency("contents", "pie"), 2)
        self.assertEqual(self.index.document_frequency("contents", "pie"), 2)
        # "the" is a stopword
        self.assertEqual(self.index.corpus_total_term_frequency("contents"), 6)
        self.assertEqual(self.index.total_document_count(), 2)
        self.assertEqual(self.index.external_id(h1), "D1")

    def test_unknown_document_resolves_to_none(self):
        self.assertIsNone(self.index.resolve_document("D9"))

    def test_term_vector_and_positions(self):
        h1 = self.index.resolve_document("D1")
        self.assertEqual(list(self.index.term_vector(h1, "contents")), [("apple", 2), ("crumble", 1), ("pie", 1)])
        self.assertEqual(self.index.term_positions(h1, "contents")["apple"], [0, 2])
        self.assertEqual(list(self.index.term_vector(h1, "title")), [])

    def test_duplicate_document_id(self):
        with self.assertRaises(ValueError):
            self.index.add_document("D1", {"contents": "again"})

    def test_search_ranks_by_score(self):
        results = self.index.search_text("apple pie")
        self.assertEqual([d.doc_id for d in results], ["D1", "D2"])
        self.assertGreater(results[0].score, results[1].score)
        self.assertEqual(results[0].handle, self.index.resolve_document("D1"))

    def test_search_boosts_and_hits(self):
        query = WeightedQuery("contents", (("apple", 0.1), ("cherry", 5.0)))
        self.assertEqual([d.doc_id for d in self.index.search(query)], ["D2", "D1"])
        self.assertEqual(len(self.index.search(query, hits=1)), 1)
        self.assertEqual(self.index.search(WeightedQuery("contents", (("banana", 1.0),))), [])

    def test_from_tsv(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "corpus.tsv")
            with open(path, "w", encoding="utf-8") as f:
                f.write("A\tapple pie\n")
                f.write("broken line\n")
                f.write("B\tcherry\ttart\n")
            index = MemoryIndex.from_tsv(path)
        self.assertEqual(len(index), 2)
        self.assertEqual(index.document_length(index.resolve_document("B"), "contents"), 2)


class TestTopics(unittest.TestCase):
    def test_read_json_topics(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "topics.jsonl")
            with open(path, "w", encoding="utf-8") as f:
                f.write(json.dumps({"qid": "2", "query": "cherry tart"}) + "\n\n")
                f.write(json.dumps({"qid": "1", "query": "apple pie", "time": "2011-01-01"}) + "\n")
            topics = read_json_topics(path)
        self.assertEqual(list(topics), ["1", "2"])
        self.assertEqual(topics["1"], {"query": "apple pie", "time": "2011-01-01"})
        self.assertEqual(topics["2"], {"query": "cherry tart"})


if __name__ == "__main__":
    unittest.main()
