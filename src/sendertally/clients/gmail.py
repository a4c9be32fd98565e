"""Gmail REST client: profile lookup, message listing, and header metadata."""

from __future__ import annotations

import httpx

MAX_PAGE_SIZE = 500  # Gmail's hard cap on messages.list maxResults


class GmailAPIError(RuntimeError):
    """A Gmail API call failed (HTTP error status, transport error, or bad payload)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ListingError(GmailAPIError):
    """A messages.list page request failed. Fatal to a run."""


class FetchError(GmailAPIError):
    """A single message's header fetch failed. Recoverable per message."""

    def __init__(self, message_id: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message, status_code)
        self.message_id = message_id


def _status_code(exc: httpx.HTTPError) -> int | None:
    """Return the HTTP status for status errors, None for transport errors."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    return None


class GmailClient:
    """Thin Gmail API client over httpx.

    A single httpx.Client is shared by every worker thread; its connection
    pool is sized so the concurrency ceiling never queues on the pool.

    Usage:
        client = GmailClient(token="ya29...")
        client.connect()  # checks the token, loads the profile
        ids, next_token = client.list_messages()
    """

    def __init__(
        self,
        token: str,
        user_id: str = "me",
        base_url: str = "https://gmail.googleapis.com/gmail/v1",
        timeout: float = 30.0,
        max_connections: int = 10,
        include_spam_trash: bool = False,
    ) -> None:
        self._token = token
        self._user_url = f"{base_url.rstrip('/')}/users/{user_id}"
        self._include_spam_trash = include_spam_trash
        self._http = httpx.Client(
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {token}",
            },
            timeout=timeout,
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_connections,
            ),
        )
        self._email_address: str | None = None
        self._messages_total: int | None = None

    @property
    def email_address(self) -> str:
        """Return the mailbox address. Raises if not connected."""
        if self._email_address is None:
            raise RuntimeError("GmailClient is not connected. Call connect() first.")
        return self._email_address

    @property
    def messages_total(self) -> int | None:
        """Return the profile's total message count, or None before connect()."""
        return self._messages_total

    def connect(self) -> None:
        """Load the Gmail profile: verifies the token and records the address.

        Raises:
            httpx.HTTPStatusError: On 401 (bad or expired token) or other HTTP errors.
            httpx.ConnectError: On network failure.
        """
        resp = self._http.get(f"{self._user_url}/profile")
        resp.raise_for_status()
        data = resp.json()
        self._email_address = data["emailAddress"]
        self._messages_total = data.get("messagesTotal")

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._http.close()

    def list_messages(
        self, page_token: str | None = None, max_results: int = MAX_PAGE_SIZE
    ) -> tuple[list[str], str | None]:
        """Fetch one page of message IDs.

        Entries without a string ``id`` are dropped.

        Args:
            page_token: Continuation cursor from the previous page, or None.
            max_results: Page size, capped at Gmail's maximum of 500.

        Returns:
            Tuple of (message_ids, next_page_token). next_page_token is None
            on the last page.

        Raises:
            ListingError: On any HTTP, transport, or payload error.
        """
        params: dict = {"maxResults": min(max_results, MAX_PAGE_SIZE)}
        if page_token is not None:
            params["pageToken"] = page_token
        if self._include_spam_trash:
            params["includeSpamTrash"] = "true"

        try:
            resp = self._http.get(f"{self._user_url}/messages", params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise ListingError(
                f"Failed to list messages: {exc}", _status_code(exc)
            ) from exc
        except ValueError as exc:
            raise ListingError(f"Malformed messages.list response: {exc}") from exc

        if not isinstance(data, dict):
            raise ListingError("Malformed messages.list response: body is not an object")
        messages = data.get("messages") or []
        if not isinstance(messages, list):
            raise ListingError("Malformed messages.list response: 'messages' is not a list")
        next_token = data.get("nextPageToken") or None
        if next_token is not None and not isinstance(next_token, str):
            raise ListingError("Malformed messages.list response: 'nextPageToken' is not a string")

        ids = [
            m["id"]
            for m in messages
            if isinstance(m, dict) and isinstance(m.get("id"), str) and m["id"]
        ]
        return ids, next_token

    def get_message_headers(
        self, message_id: str, header_names: list[str] | None = None
    ) -> list[dict]:
        """Fetch header metadata (no body) for one message.

        Uses ``format=metadata`` with ``metadataHeaders`` so only the named
        headers come back.

        Args:
            message_id: The Gmail message ID.
            header_names: Headers to request. Defaults to ["From"].

        Returns:
            The message's ``payload.headers`` list of {"name", "value"} dicts
            (empty when the payload carries no headers). Entries that are
            not objects are dropped.

        Raises:
            FetchError: On any HTTP, transport, or payload error.
        """
        if header_names is None:
            header_names = ["From"]

        params = [("format", "metadata")]
        params.extend(("metadataHeaders", name) for name in header_names)

        try:
            resp = self._http.get(
                f"{self._user_url}/messages/{message_id}", params=params
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise FetchError(
                message_id,
                f"Failed to fetch message {message_id}: {exc}",
                _status_code(exc),
            ) from exc
        except ValueError as exc:
            raise FetchError(
                message_id, f"Malformed response for message {message_id}: {exc}"
            ) from exc

        if not isinstance(data, dict):
            raise FetchError(message_id, f"Malformed response for message {message_id}")
        payload = data.get("payload") or {}
        if not isinstance(payload, dict):
            raise FetchError(message_id, f"Malformed payload for message {message_id}")
        headers = payload.get("headers") or []
        if not isinstance(headers, list):
            raise FetchError(message_id, f"Malformed headers for message {message_id}")
        return [h for h in headers if isinstance(h, dict)]
