"""
Learning-to-rank feature extraction.

- `extractors`: the scoring functions, one feature column each.
- `chain`: an ordered, name-unique set of extractors evaluated per document.
- `registry`: per-query extraction jobs run on a worker pool and fetched once by qid.
"""
