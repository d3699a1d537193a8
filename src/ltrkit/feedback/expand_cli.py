from __future__ import annotations

import argparse
from pathlib import Path
from time import perf_counter

import tqdm

from ltrkit.feedback.reranker import RerankerContext, SMMReranker
from ltrkit.index.memory import MemoryIndex
from ltrkit.topics import read_json_topics
from ltrkit.utils.config import Config
from ltrkit.utils.logger import write_message_to_log_file


def main() -> None:
    ap = argparse.ArgumentParser(description="BM25 -> SMM pseudo-relevance feedback -> expanded BM25 run.")
    ap.add_argument("--config", type=str, default=None, help="YAML config (default: configs/base.yaml).")
    ap.add_argument("--corpus", type=str, required=True, help="Corpus TSV (doc_id\\ttext).")
    ap.add_argument("--topics", type=str, required=True, help="JSONL topics ({qid, query, time}).")
    ap.add_argument("--out", type=str, required=True, help="Output TREC run file.")
    ap.add_argument("--queries-out", type=str, default="", help="Optional file for 'qid<TAB>w:term ...' lines.")
    ap.add_argument("--fb-docs", type=int, default=None)
    ap.add_argument("--fb-terms", type=int, default=None)
    ap.add_argument("--lambda", dest="lambda_", type=float, default=None)
    ap.add_argument("--original-query-weight", type=float, default=None)
    ap.add_argument("--hits", type=int, default=None)
    args = ap.parse_args()

    cfg = Config(load=True, path=args.config)
    overrides = {
        "FB_DOCS": args.fb_docs,
        "FB_TERMS": args.fb_terms,
        "LAMBDA": args.lambda_,
        "ORIGINAL_QUERY_WEIGHT": args.original_query_weight,
        "HITS": args.hits,
    }
    cfg.update_dict({"SMM": {k: v for k, v in overrides.items() if v is not None}})
    hits = int(cfg.SMM.HITS or 1000)

    index = MemoryIndex.from_tsv(args.corpus, cfg=cfg, field=cfg.SMM.FIELD or "contents")
    reranker = SMMReranker.from_config(index, cfg)
    topics = read_json_topics(args.topics)

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    queries_out = open(args.queries_out, "w", encoding="utf-8") if args.queries_out else None

    start = perf_counter()
    try:
        with out.open("w", encoding="utf-8") as f:
            for qid, topic in tqdm.tqdm(topics.items(), desc="smm"):
                first_pass = index.search_text(topic["query"], field=reranker.field, hits=hits)
                fq = reranker.feedback_query(first_pass, topic["query"])
                if queries_out is not None:
                    queries_out.write(f"{qid}\t{fq.to_raw()}\n")
                context = RerankerContext(query_id=qid, query_text=topic["query"], searcher=index, hits=hits)
                for rank, doc in enumerate(reranker.rerank(first_pass, context, feedback_query=fq), start=1):
                    f.write(f"{qid} Q0 {doc.doc_id} {rank} {doc.score:.6f} {reranker.tag()}\n")
    finally:
        if queries_out is not None:
            queries_out.close()

    summary = f"[SMM] topics={len(topics)} docs={len(index)} time={perf_counter() - start:.2f}s tag={reranker.tag()}"
    print(summary)
    write_message_to_log_file(summary, cfg)


if __name__ == "__main__":
    main()
