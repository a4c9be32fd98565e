"""Bounded-concurrency batch scheduler for per-message header fetches.

Message IDs are split into fixed-size batches. Each batch runs on one
worker thread, fetching its messages one at a time, then pauses for the
pacing delay before the worker takes another batch. With at most
``concurrency`` workers, at most ``concurrency`` fetches are ever in
flight. Gmail publishes per-user quotas but throttles bursts well before
them, so the ceiling matters more than raw throughput.

Per-message failures never stop the run: they are logged, counted and
returned as ``FetchFailure`` values in ``RunStats``.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

import structlog

from sendertally.clients.gmail import FetchError
from sendertally.pipeline.extractor import extract_sender

DEFAULT_CONCURRENCY = 5
DEFAULT_BATCH_SIZE = 100
DEFAULT_PACING_DELAY = 0.08  # seconds


@dataclass(frozen=True)
class FetchFailure:
    """One message whose header fetch failed."""

    message_id: str
    error: str
    status_code: int | None = None


@dataclass(frozen=True)
class RunStats:
    """Outcome counters for one scheduler run.

    ``senders_extracted`` counts distinct sender keys this run added to the
    tally; ``messages_matched`` counts fetched messages that yielded a sender.
    ``not_dispatched`` is non-zero only when the run was cancelled.
    """

    total_ids: int
    fetched_ok: int
    fetched_failed: int
    senders_extracted: int
    messages_matched: int = 0
    not_dispatched: int = 0
    cancelled: bool = False
    failures: tuple[FetchFailure, ...] = ()


@dataclass
class _BatchResult:
    """Counters accumulated by a single worker for a single batch."""

    fetched_ok: int = 0
    fetched_failed: int = 0
    messages_matched: int = 0
    new_senders: int = 0
    not_dispatched: int = 0
    failures: list[FetchFailure] = field(default_factory=list)

    @property
    def resolved(self) -> int:
        return self.fetched_ok + self.fetched_failed


class BatchScheduler:
    """Runs a fetch function over message IDs with a hard concurrency ceiling.

    Usage:
        scheduler = BatchScheduler(concurrency=5, batch_size=100, pacing_delay=0.08)
        stats = scheduler.run(ids, fetch=lambda mid: fetch_from_header(client, mid),
                              on_match=tally.record)
    """

    def __init__(
        self,
        concurrency: int = DEFAULT_CONCURRENCY,
        batch_size: int = DEFAULT_BATCH_SIZE,
        pacing_delay: float = DEFAULT_PACING_DELAY,
        cancel_event: threading.Event | None = None,
        progress: Callable[[int, int], None] | None = None,
        sleep_fn: Callable[[float], object] | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        if pacing_delay < 0:
            raise ValueError(f"pacing_delay must be >= 0, got {pacing_delay}")

        self._concurrency = concurrency
        self._batch_size = batch_size
        self._pacing_delay = pacing_delay
        self._cancel = cancel_event if cancel_event is not None else threading.Event()
        self._progress = progress
        # Waiting on the cancel event lets a pacing pause end early on shutdown.
        self._sleep = sleep_fn if sleep_fn is not None else self._cancel.wait
        self._log = structlog.get_logger(component="scheduler")

    def run(
        self,
        ids: Sequence[str],
        fetch: Callable[[str], str | None],
        on_match: Callable[[str], object],
    ) -> RunStats:
        """Fetch every ID once, route extracted senders to ``on_match``.

        Args:
            ids: Message IDs to process. Duplicates are processed each time.
            fetch: Returns the raw From header for an ID (or None); raises
                ``FetchError`` on failure.
            on_match: Receives each extracted sender address. A truthy return
                means the address was new and counts toward
                ``senders_extracted``.

        Returns:
            RunStats for the run. Returns only after every dispatched fetch
            has resolved.
        """
        total = len(ids)
        batches = [
            list(ids[start : start + self._batch_size])
            for start in range(0, total, self._batch_size)
        ]
        self._log.info(
            "scheduler_started",
            total_ids=total,
            batches=len(batches),
            batch_size=self._batch_size,
            concurrency=self._concurrency,
            pacing_delay=self._pacing_delay,
        )

        fetched_ok = 0
        fetched_failed = 0
        messages_matched = 0
        senders_extracted = 0
        not_dispatched = 0
        failures: list[FetchFailure] = []
        completed = 0

        if batches:
            with ThreadPoolExecutor(
                max_workers=self._concurrency, thread_name_prefix="fetch"
            ) as executor:
                futures = [
                    executor.submit(self._run_batch, batch, fetch, on_match)
                    for batch in batches
                ]
                for future in as_completed(futures):
                    result = future.result()
                    fetched_ok += result.fetched_ok
                    fetched_failed += result.fetched_failed
                    messages_matched += result.messages_matched
                    senders_extracted += result.new_senders
                    not_dispatched += result.not_dispatched
                    failures.extend(result.failures)

                    completed += result.resolved
                    self._log.debug(
                        "batch_completed",
                        fetched_ok=result.fetched_ok,
                        fetched_failed=result.fetched_failed,
                        completed=completed,
                        total=total,
                    )
                    if self._progress is not None:
                        self._progress(completed, total)

        cancelled = self._cancel.is_set()
        stats = RunStats(
            total_ids=total,
            fetched_ok=fetched_ok,
            fetched_failed=fetched_failed,
            senders_extracted=senders_extracted,
            messages_matched=messages_matched,
            not_dispatched=not_dispatched,
            cancelled=cancelled,
            failures=tuple(failures),
        )
        log_fn = self._log.warning if cancelled else self._log.info
        log_fn(
            "scheduler_finished",
            total_ids=total,
            fetched_ok=fetched_ok,
            fetched_failed=fetched_failed,
            senders_extracted=senders_extracted,
            not_dispatched=not_dispatched,
            cancelled=cancelled,
        )
        return stats

    def _run_batch(
        self,
        batch: list[str],
        fetch: Callable[[str], str | None],
        on_match: Callable[[str], object],
    ) -> _BatchResult:
        """Fetch one batch sequentially on the current worker, then pace."""
        result = _BatchResult()

        for position, message_id in enumerate(batch):
            if self._cancel.is_set():
                result.not_dispatched = len(batch) - position
                return result

            try:
                raw = fetch(message_id)
            except FetchError as exc:
                result.fetched_failed += 1
                result.failures.append(
                    FetchFailure(message_id, str(exc), exc.status_code)
                )
                self._log.warning(
                    "message_fetch_failed",
                    message_id=message_id,
                    status_code=exc.status_code,
                    error=str(exc),
                )
                continue
            except Exception as exc:
                result.fetched_failed += 1
                result.failures.append(FetchFailure(message_id, repr(exc)))
                self._log.warning(
                    "message_fetch_failed",
                    message_id=message_id,
                    error=repr(exc),
                    exc_info=True,
                )
                continue

            result.fetched_ok += 1
            address = extract_sender(raw)
            if address is None:
                self._log.debug("sender_not_found", message_id=message_id, header=raw)
                continue
            result.messages_matched += 1
            if on_match(address):
                result.new_senders += 1

        if self._pacing_delay > 0:
            self._sleep(self._pacing_delay)
        return result
