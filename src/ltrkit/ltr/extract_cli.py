from __future__ import annotations

import argparse
import json
from pathlib import Path
from time import perf_counter

import tqdm

from ltrkit.index.memory import MemoryIndex
from ltrkit.ltr.models import JobRequest
from ltrkit.ltr.registry import ExtractionJobRegistry
from ltrkit.utils.config import Config
from ltrkit.utils.logger import write_message_to_log_file


def main() -> None:
    ap = argparse.ArgumentParser(description="Compute LTR feature vectors for JSONL job payloads.")
    ap.add_argument("--config", type=str, default=None, help="YAML config (default: configs/base.yaml).")
    ap.add_argument("--corpus", type=str, required=True, help="Corpus TSV (doc_id\\ttext).")
    ap.add_argument("--jobs", type=str, required=True, help="JSONL, one {qid, docIds, analyzed} per line.")
    ap.add_argument("--out", type=str, required=True, help="Output JSONL, one {qid, names, rows} per line.")
    ap.add_argument("--workers", type=int, default=None)
    ap.add_argument("--debug", action="store_true", help="Record per-extractor timings.")
    args = ap.parse_args()

    cfg = Config(load=True, path=args.config)
    if args.workers is not None:
        cfg.update_dict({"LTR": {"NUM_WORKERS": args.workers}})
    debug = args.debug or bool(cfg.LTR.DEBUG)

    index = MemoryIndex.from_tsv(args.corpus, cfg=cfg)
    with open(args.jobs, "r", encoding="utf-8") as f:
        requests = [JobRequest.model_validate(json.loads(line)) for line in f if line.strip()]

    start = perf_counter()
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    with ExtractionJobRegistry.from_config(index, cfg) as registry:
        # Submit everything first so the pool stays busy, then drain in input order.
        for req in requests:
            registry.submit(req.qid, req.doc_ids, req.payload(), debug=debug)
        with out.open("w", encoding="utf-8") as f:
            for req in tqdm.tqdm(requests, desc="features"):
                rows = registry.retrieve(req.qid)
                rec = {
                    "qid": req.qid,
                    "names": registry.names(),
                    "rows": [r.model_dump(by_alias=True, exclude_none=True) for r in rows],
                }
                f.write(json.dumps(rec, ensure_ascii=False) + "\n")

    n_docs = sum(len(r.doc_ids) for r in requests)
    summary = f"[LTR] jobs={len(requests)} docs={n_docs} time={perf_counter() - start:.2f}s"
    print(summary)
    write_message_to_log_file(summary, cfg)


if __name__ == "__main__":
    main()
