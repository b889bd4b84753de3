"""Local file I/O utilities."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from common.datetime import utc_now

logger = logging.getLogger(__name__)


def append_jsonl_local(records: Iterable[Mapping[str, Any]], filepath: Path) -> int:
    """Append records to a JSONL file, creating parent directories as needed."""
    filepath.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with filepath.open("a") as f:
        for record in records:
            f.write(json.dumps(record, default=str, ensure_ascii=False) + "\n")
            count += 1
    return count


def read_jsonl_local(filepath: Path) -> list[dict]:
    """Read a JSONL file. A missing file reads as empty."""
    if not filepath.exists():
        return []
    records = []
    with filepath.open() as f:
        for line in f:
            line = line.strip()
            if line:
                records.append(json.loads(line))
    return records


def save_jsonl_records_local(
    records: list[Mapping[str, Any]],
    prefix: str,
    output_dir: str = "output",
) -> Path:
    """
    Save a list of serialized records to a timestamped local JSONL file.

    Args:
        records: List of dicts to save
        prefix: Filename prefix (e.g., "topics_climate")
        output_dir: Directory to save to (default: "output")

    Returns:
        Path to the created file.
    """
    now = utc_now()
    filepath = Path(output_dir) / f"{prefix}_{now.strftime('%Y_%m_%d_%H_%M')}.jsonl"
    append_jsonl_local(records, filepath)
    logger.info("Saved %d records to %s", len(records), filepath)
    return filepath
