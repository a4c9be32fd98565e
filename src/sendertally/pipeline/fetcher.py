"""Per-message From header retrieval."""

from __future__ import annotations

from sendertally.clients.gmail import GmailClient


def fetch_from_header(client: GmailClient, message_id: str) -> str | None:
    """Return the raw From header value for one message, or None if it has none.

    Header names are matched case-insensitively. Errors from the client
    (``FetchError``) propagate to the caller; nothing is retried here.
    """
    for header in client.get_message_headers(message_id, ["From"]):
        name = header.get("name") or ""
        if name.lower() == "from":
            return header.get("value")
    return None
