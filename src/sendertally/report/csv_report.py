"""CSV report writer: one row per sender with its message count."""

from __future__ import annotations

import csv
from collections.abc import Iterable
from pathlib import Path

HEADER = ("Sender", "MessageCount")


def write_report(path: Path | str, rows: Iterable[tuple[str, int]]) -> Path:
    """Write ``Sender,MessageCount`` rows to ``path``, replacing any existing file.

    Rows are written in the order given. Parent directories are created.

    Returns:
        The path written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(HEADER)
        for sender, count in rows:
            writer.writerow((sender, count))
    return path
