"""
Bounded history of serialized map snapshots.
"""

from __future__ import annotations

import logging
from collections import deque

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 16
DEFAULT_MAX_BYTES = 16 * 1024 * 1024


class UndoLog:
    """
    FIFO of snapshots capped jointly by entry count and total size.

    Old entries are evicted only while BOTH caps are exceeded, so the log may
    run over one cap on its own but never over both at once. The newest entry
    is always the current state.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        max_bytes: int = DEFAULT_MAX_BYTES,
    ) -> None:
        self.max_entries = max_entries
        self.max_bytes = max_bytes
        self._entries: deque[bytes] = deque()
        self._size = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def size(self) -> int:
        """Total bytes currently held."""
        return self._size

    def push(self, snapshot: bytes) -> None:
        self._entries.append(snapshot)
        self._size += len(snapshot)
        while len(self._entries) > self.max_entries and self._size > self.max_bytes:
            evicted = self._entries.popleft()
            self._size -= len(evicted)
            logger.debug("Evicted %d byte snapshot from undo log", len(evicted))

    def pop_previous(self) -> bytes | None:
        """
        Discard the newest snapshot and return the one before it.

        The returned snapshot stays in the log and is now the newest entry.

        Returns:
            The prior snapshot, or None if there is nothing to revert to
        """
        if len(self._entries) <= 1:
            return None
        newest = self._entries.pop()
        self._size -= len(newest)
        return self._entries[-1]

    def clear(self) -> None:
        self._entries.clear()
        self._size = 0
