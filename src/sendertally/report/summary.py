"""End-of-run summary: top senders table and fetch counters."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import TextIO

from sendertally.workflows.sender_report import ReportResult

GREEN = "\033[32m"
YELLOW = "\033[33m"
RED = "\033[31m"
DIM = "\033[2m"
CYAN = "\033[36m"
RESET = "\033[0m"


def use_color(out: TextIO) -> bool:
    """Return True if ``out`` is a terminal and NO_COLOR is unset."""
    if os.environ.get("NO_COLOR"):
        return False
    return hasattr(out, "isatty") and out.isatty()


def _paint(text: str, code: str, enabled: bool) -> str:
    return f"{code}{text}{RESET}" if enabled else text


def _print_top_senders(
    rows: list[tuple[str, int]], top: int, out: TextIO, colored: bool
) -> None:
    """Print the ``top`` busiest senders as an aligned two-column table."""
    if top <= 0 or not rows:
        return
    shown = rows[:top]
    print(_paint(f"Top {len(shown)} senders", CYAN, colored), file=out)
    width = max(len(sender) for sender, _ in shown)
    for sender, count in shown:
        print(f"  {sender:<{width}}  {count:>7}", file=out)
    print(file=out)


def print_summary(
    result: ReportResult,
    report_path: Path | None,
    top: int = 10,
    out: TextIO | None = None,
) -> None:
    """Print the run summary.

    Shows the top senders, then one counter line:
    ``1200 messages · 1195 read · 5 failed · 310 senders``.
    A cancelled run is flagged so the partial report is not mistaken for a
    complete one.

    Args:
        result: Tally and stats from SenderReportWorkflow.run().
        report_path: Where the CSV was written, or None if not written.
        top: How many senders to list (0 disables the table).
        out: Output stream, stdout by default.
    """
    if out is None:
        out = sys.stdout
    colored = use_color(out)
    stats = result.stats

    print(file=out)
    _print_top_senders(result.rows(), top, out, colored)

    parts = [
        f"{stats.total_ids} messages",
        _paint(f"{stats.fetched_ok} read", GREEN, colored),
    ]
    if stats.fetched_failed:
        parts.append(_paint(f"{stats.fetched_failed} failed", RED, colored))
    if stats.not_dispatched:
        parts.append(_paint(f"{stats.not_dispatched} skipped", DIM, colored))
    parts.append(f"{len(result.tally)} senders")
    print(" · ".join(parts), file=out)

    if stats.cancelled:
        message = "Run interrupted: report is partial."
        if report_path is None:
            message = "Run interrupted: no report written."
        print(_paint(message, YELLOW, colored), file=out)
    if report_path is not None:
        print(f"Saved {report_path}", file=out)
