"""Click CLI entry point for sendertally.

Provides `count` and `whoami` subcommands. When invoked without a subcommand
(e.g. `python -m sendertally`), defaults to `count`.
"""

from pathlib import Path

import click


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """sendertally: count Gmail messages per sender."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(count)


@cli.command()
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None, help="CSV report path")
@click.option("--concurrency", type=click.IntRange(min=1), default=None, help="Max fetches in flight")
@click.option("--batch-size", type=click.IntRange(min=1), default=None, help="Messages per batch")
@click.option("--delay-ms", type=click.IntRange(min=0), default=None, help="Pause after each batch (ms)")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Only count the N newest messages")
@click.option("--top", type=click.IntRange(min=0), default=None, help="Senders to list in the summary")
@click.option(
    "--log-format", type=click.Choice(["auto", "json", "console"]), default=None, help="Log output format on stderr"
)
@click.option("--no-progress", is_flag=True, default=False, help="Disable the progress bar")
def count(
    output: Path | None,
    concurrency: int | None,
    batch_size: int | None,
    delay_ms: int | None,
    limit: int | None,
    top: int | None,
    log_format: str | None,
    no_progress: bool,
) -> None:
    """Count every message in the mailbox by sender and write a CSV report."""
    from sendertally.__main__ import main

    main(
        output=output,
        concurrency=concurrency,
        batch_size=batch_size,
        delay_ms=delay_ms,
        limit=limit,
        top=top,
        log_format=log_format,
        show_progress=not no_progress,
    )


@cli.command()
def whoami() -> None:
    """Check the access token and show which mailbox it opens."""
    from sendertally.__main__ import build_client
    from sendertally.core.config import SenderTallySettings

    settings = SenderTallySettings()
    gmail = build_client(settings)
    try:
        gmail.connect()
    finally:
        gmail.close()
    click.echo(f"Connected as {gmail.email_address}")
    if gmail.messages_total is not None:
        click.echo(f"  {gmail.messages_total} messages in mailbox")
