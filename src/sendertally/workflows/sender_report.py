"""SenderReportWorkflow: list every message, fetch From headers concurrently, tally senders."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from sendertally.clients.gmail import GmailClient
from sendertally.core.config import SenderTallySettings
from sendertally.pipeline.aggregator import SenderTally, rank_senders
from sendertally.pipeline.fetcher import fetch_from_header
from sendertally.pipeline.lister import list_all_message_ids
from sendertally.pipeline.scheduler import BatchScheduler, RunStats


@dataclass(frozen=True)
class ReportResult:
    """Final sender tally plus the run counters that produced it."""

    tally: dict[str, int]
    stats: RunStats

    def rows(self) -> list[tuple[str, int]]:
        """Return (sender, count) rows, highest count first, ties by address."""
        return rank_senders(self.tally)


class SenderReportWorkflow:
    """Orchestrates the sender-count pipeline.

    The run() method executes one full pass:
    1. List all message IDs (any listing failure raises ListingError)
    2. Fetch From headers under the scheduler's concurrency ceiling
    3. Record each extracted sender into a run-owned SenderTally
    4. Return the tally snapshot with RunStats

    Per-message fetch failures are reported in RunStats, never raised.
    """

    def __init__(self, gmail: GmailClient, settings: SenderTallySettings) -> None:
        self._gmail = gmail
        self._settings = settings
        self._log = structlog.get_logger(component="workflow")

    def run(
        self,
        cancel_event: threading.Event | None = None,
        progress: Callable[[int, int], None] | None = None,
        on_listing_page: Callable[[int], None] | None = None,
    ) -> ReportResult:
        """Execute one full run. Returns the tally and run stats.

        Args:
            cancel_event: When set, stops dispatching fetches; partial results stand.
            progress: Receives (completed, total) as fetch batches resolve.
            on_listing_page: Receives the running ID count after each listing page.

        Raises:
            ListingError: If any messages.list page fails.
        """
        gmail_cfg = self._settings.gmail
        sched_cfg = self._settings.scheduler

        # Step 1: Enumerate message IDs (fail fast)
        message_ids = list_all_message_ids(
            self._gmail,
            page_size=gmail_cfg.page_size,
            max_messages=gmail_cfg.max_messages,
            on_page=on_listing_page,
            cancel_event=cancel_event,
        )

        # Step 2: Fetch + extract + record under the concurrency ceiling
        tally = SenderTally()
        scheduler = BatchScheduler(
            concurrency=sched_cfg.concurrency,
            batch_size=sched_cfg.batch_size,
            pacing_delay=sched_cfg.pacing_delay,
            cancel_event=cancel_event,
            progress=progress,
        )
        stats = scheduler.run(
            message_ids,
            fetch=lambda message_id: fetch_from_header(self._gmail, message_id),
            on_match=tally.record,
        )

        # Step 3: Snapshot after all workers have joined
        result = ReportResult(tally=tally.snapshot(), stats=stats)

        self._log.info(
            "run_complete",
            total_ids=stats.total_ids,
            fetched_ok=stats.fetched_ok,
            fetched_failed=stats.fetched_failed,
            senders=len(result.tally),
            cancelled=stats.cancelled,
        )
        return result
