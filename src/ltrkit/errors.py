"""Error kinds raised by feature-job orchestration and relevance-model estimation."""

from __future__ import annotations

from typing import Optional


class LtrError(Exception):
    """Base class for all ltrkit errors."""


class DuplicateJobError(LtrError):
    def __init__(self, qid: str):
        super().__init__(f"A job for qid {qid!r} is already registered")
        self.qid = qid


class UnknownJobError(LtrError):
    def __init__(self, qid: str):
        super().__init__(f"No job registered for qid {qid!r}")
        self.qid = qid


class DocumentNotFoundError(LtrError):
    def __init__(self, doc_id: str, qid: Optional[str] = None):
        msg = f"Document Id {doc_id} expected but not found in index"
        if qid is not None:
            msg += f" (qid {qid!r})"
        super().__init__(msg)
        self.doc_id = doc_id
        self.qid = qid


class StatisticsProviderError(LtrError):
    """Lookup or I/O failure while reading term statistics."""


class DuplicateFeatureNameError(LtrError):
    def __init__(self, name: str):
        super().__init__(f"Feature extractor {name!r} already exists in the chain")
        self.name = name


class InvalidFeatureValueError(LtrError):
    def __init__(self, name: str, value: float, doc_id: Optional[str] = None, qid: Optional[str] = None):
        msg = f"Feature {name!r} produced a non-finite value {value!r} for document {doc_id}"
        if qid is not None:
            msg += f" (qid {qid!r})"
        super().__init__(msg)
        self.name = name
        self.value = value
        self.doc_id = doc_id
        self.qid = qid


class FeatureExtractionError(LtrError):
    """An extractor failed on a document; the cause is chained."""

    def __init__(self, qid: str, doc_id: Optional[str], cause: BaseException):
        super().__init__(f"Feature extraction failed for qid {qid!r}, document {doc_id}: {type(cause).__name__}: {cause}")
        self.qid = qid
        self.doc_id = doc_id


class UnknownExtractorError(LtrError):
    def __init__(self, kind: str):
        super().__init__(f"Extractor '{kind}' not found in registry.")
        self.kind = kind
