"""Thread-safe per-sender message counter."""

from __future__ import annotations

import threading


def rank_senders(counts: dict[str, int]) -> list[tuple[str, int]]:
    """Return (sender, count) pairs, highest count first, ties by address."""
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


class SenderTally:
    """Counts messages per normalized sender address.

    ``record`` is safe to call from any number of worker threads; the lock
    covers only the single increment. ``snapshot`` is meant to be read after
    the scheduler has joined its workers.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict[str, int] = {}

    def record(self, address: str) -> bool:
        """Increment the count for ``address``. Returns True if the key is new."""
        with self._lock:
            current = self._counts.get(address)
            self._counts[address] = 1 if current is None else current + 1
            return current is None

    def snapshot(self) -> dict[str, int]:
        """Return a copy of the current sender -> count mapping."""
        with self._lock:
            return dict(self._counts)
