"""Serialization utilities."""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping


def to_jsonl(records: Iterable[Mapping[str, Any]]) -> str:
    """Encode records as line-delimited JSON (one object per line)."""
    return "".join(json.dumps(record, default=str, ensure_ascii=False) + "\n" for record in records)


def from_jsonl(content: str) -> list[dict]:
    """Decode line-delimited JSON, skipping blank lines."""
    records = []
    for line in content.splitlines():
        line = line.strip()
        if line:
            records.append(json.loads(line))
    return records
