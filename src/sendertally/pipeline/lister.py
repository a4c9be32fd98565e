"""Full message ID enumeration over the paginated messages.list endpoint."""

from __future__ import annotations

import threading
from collections.abc import Callable

import structlog

from sendertally.clients.gmail import MAX_PAGE_SIZE, GmailClient


def list_all_message_ids(
    client: GmailClient,
    page_size: int = MAX_PAGE_SIZE,
    max_messages: int | None = None,
    on_page: Callable[[int], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> list[str]:
    """Walk every page of messages.list and return all message IDs.

    Pages are requested until the response carries no nextPageToken. A
    failed page raises ``ListingError`` straight through: a partial ID set
    would silently under-count, so the run must stop.

    Args:
        client: Connected Gmail client.
        page_size: Requested page size, capped at 500.
        max_messages: Stop once this many IDs are collected (None = all).
        on_page: Called with the running ID count after each page.
        cancel_event: Checked before each page request. Once set, no
            further pages are requested and the IDs loaded so far are
            returned.

    Returns:
        Message IDs in the order the API returned them.
    """
    log = structlog.get_logger(component="lister")
    page_size = min(page_size, MAX_PAGE_SIZE)

    message_ids: list[str] = []
    page_token: str | None = None
    pages = 0

    while True:
        if cancel_event is not None and cancel_event.is_set():
            log.warning("listing_cancelled", pages=pages, message_ids=len(message_ids))
            return message_ids

        ids, page_token = client.list_messages(page_token, page_size)
        message_ids.extend(ids)
        pages += 1
        log.debug("listing_page_loaded", page=pages, page_ids=len(ids), total=len(message_ids))
        if on_page is not None:
            on_page(len(message_ids))

        if max_messages is not None and len(message_ids) >= max_messages:
            message_ids = message_ids[:max_messages]
            break
        if page_token is None:
            break

    log.info("listing_complete", pages=pages, message_ids=len(message_ids))
    return message_ids
