from __future__ import annotations

import json
from pathlib import Path


def read_json_topics(path: str | Path) -> dict[str, dict[str, str]]:
    """
    Reads one JSON object per line, `{"qid": ..., "query": ..., "time": ...}`, into
    `{qid: {"query": ..., "time": ...}}` ordered by qid. `time` is optional.
    """
    topics: dict[str, dict[str, str]] = {}
    with Path(path).open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            node = json.loads(line)
            fields = {"query": str(node["query"])}
            if node.get("time") is not None:
                fields["time"] = str(node["time"])
            topics[str(node["qid"])] = fields
    return dict(sorted(topics.items()))
