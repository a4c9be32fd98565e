"""sendertally run entry point.

Startup sequence (crashes on failure): load config, configure logging,
connect to Gmail. Then one full pipeline run:
- Listing failure: logged, exit status 1, no report written
- Per-message fetch failures: counted in the summary, run continues
- SIGINT/SIGTERM: stop listing or dispatching, write the partial report
  (skipped when nothing was fetched yet), exit status 130
"""

import contextlib
import signal
import sys
import threading
from pathlib import Path

import click
import structlog

from sendertally.clients.gmail import GmailClient, ListingError
from sendertally.core.config import SenderTallySettings
from sendertally.core.logging import configure_logging
from sendertally.report.csv_report import write_report
from sendertally.report.summary import print_summary
from sendertally.workflows.sender_report import SenderReportWorkflow

EXIT_INTERRUPTED = 130


class ProgressReporter:
    """Draws listing and fetch progress on stderr with click.

    The fetch bar is created lazily on the first update, once the total
    message count is known.
    """

    def __init__(self, enabled: bool) -> None:
        self._enabled = enabled
        self._stack = contextlib.ExitStack()
        self._bar = None
        self._shown = 0

    def listing(self, loaded: int) -> None:
        if self._enabled:
            click.echo(f"\rListing messages... {loaded}", nl=False, err=True)

    def fetching(self, completed: int, total: int) -> None:
        if not self._enabled:
            return
        if self._bar is None:
            click.echo(err=True)
            self._bar = self._stack.enter_context(
                click.progressbar(length=total, label="Reading headers", file=sys.stderr)
            )
        self._bar.update(completed - self._shown)
        self._shown = completed

    def close(self) -> None:
        self._stack.close()


def build_client(settings: SenderTallySettings) -> GmailClient:
    """Create a GmailClient whose connection pool covers the concurrency ceiling."""
    return GmailClient(
        token=settings.resolve_token(),
        user_id=settings.gmail.user_id,
        base_url=settings.gmail.base_url,
        timeout=settings.gmail.timeout_seconds,
        max_connections=max(10, settings.scheduler.concurrency),
        include_spam_trash=settings.gmail.include_spam_trash,
    )


def main(
    output: Path | None = None,
    concurrency: int | None = None,
    batch_size: int | None = None,
    delay_ms: int | None = None,
    limit: int | None = None,
    top: int | None = None,
    log_format: str | None = None,
    show_progress: bool = True,
) -> None:
    """Run one sender count and write the CSV report."""
    # --- Startup sequence (crashes on failure) ---

    # 1. Load config, apply CLI overrides
    settings = SenderTallySettings().with_overrides(
        concurrency=concurrency,
        batch_size=batch_size,
        pacing_delay_ms=delay_ms,
        max_messages=limit,
        report_path=output,
        top=top,
        log_format=log_format,
    )
    configure_logging(settings.logging.level, settings.logging.format)
    log = structlog.get_logger(component="main")

    # 2. Connect Gmail client (401 here means a bad or expired token)
    gmail = build_client(settings)
    gmail.connect()
    log.info(
        "connected",
        email_address=gmail.email_address,
        messages_total=gmail.messages_total,
    )

    # --- Graceful shutdown ---

    cancel_event = threading.Event()

    def _handle_signal(signum: int, frame: object) -> None:
        log.info("shutdown_signal_received", signal=signum)
        cancel_event.set()

    signal.signal(signal.SIGTERM, _handle_signal)
    signal.signal(signal.SIGINT, _handle_signal)

    # --- Run ---

    workflow = SenderReportWorkflow(gmail, settings)
    progress = ProgressReporter(enabled=show_progress and sys.stderr.isatty())
    try:
        result = workflow.run(
            cancel_event=cancel_event,
            progress=progress.fetching,
            on_listing_page=progress.listing,
        )
    except ListingError as exc:
        log.error("listing_failed", status_code=exc.status_code, error=str(exc))
        sys.exit(1)
    finally:
        progress.close()
        gmail.close()

    # Nothing was fetched: keep any report from an earlier run intact
    stats = result.stats
    report_path = None
    if stats.cancelled and stats.fetched_ok + stats.fetched_failed == 0:
        log.warning("report_skipped", path=str(settings.report.path))
    else:
        report_path = write_report(settings.report.path, result.rows())
        log.info("report_written", path=str(report_path), rows=len(result.tally))
    print_summary(result, report_path, top=settings.report.top)

    if result.stats.cancelled:
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    from sendertally.cli import cli

    cli()
