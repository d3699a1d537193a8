import math

# Lucene defaults; the config's BM25 section overrides them.
DEFAULT_K1 = 0.9
DEFAULT_B = 0.4


def bm25_idf(num_docs: int, df: int) -> float:
    return math.log((num_docs - df + 0.5) / (df + 0.5) + 1)


def bm25_term_score(
    tf: float,
    df: int,
    doc_len: float,
    avg_doc_len: float,
    num_docs: int,
    k1: float = DEFAULT_K1,
    b: float = DEFAULT_B,
) -> float:
    '''
    Okapi BM25 contribution of one term to one document.
    Zero when the term does not occur in the document.
    '''
    if tf <= 0:
        return 0.0
    norm = doc_len / avg_doc_len if avg_doc_len > 0 else 1.0
    denom = tf + k1 * (1 - b + b * norm)
    return bm25_idf(num_docs, df) * ((tf * (k1 + 1)) / denom)


def tfidf_term_score(tf: float, df: int, num_docs: int) -> float:
    if tf <= 0:
        return 0.0
    return math.log(1 + tf) * math.log(num_docs / (df + 1))
