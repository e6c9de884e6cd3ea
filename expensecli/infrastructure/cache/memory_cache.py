"""Concrete implementation of the CacheStore interface.

Holds a single in-memory slot with the last successful expense listing.
Writes are last-writer-wins and unlocked; the slot is an optimization, not a
correctness boundary, so concurrent fetches racing on it is acceptable.
"""

import logging
from typing import Optional

# Domain Layer Imports
from expensecli.domain.interfaces.cache import CacheStore
from expensecli.domain.models.common import CacheKey
from expensecli.domain.models.expense import CacheEntry

logger = logging.getLogger(__name__)


class InMemoryCacheStore(CacheStore):
    """Single-slot, process-local cache keyed by effective user identity."""

    def __init__(self):
        """Initializes the store in the cleared state."""
        self._entry: CacheEntry = CacheEntry.empty()
        logger.info("InMemoryCacheStore initialized.")

    @property
    def entry(self) -> CacheEntry:
        """The current slot content, including the cleared state."""
        return self._entry

    # --- CacheStore Interface Implementation ---

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """Returns the slot if it holds data fetched for ``key``."""
        entry = self._entry
        if entry.data is None or entry.user_id != key:
            logger.debug(f"Cache miss for key: {key}")
            return None
        logger.debug(f"Cache slot matches key: {key}")
        return entry

    def set(self, key: CacheKey, entry: CacheEntry) -> None:
        """Overwrites the slot. ``entry.user_id`` is aligned with ``key``."""
        if entry.user_id != key:
            entry = CacheEntry(data=entry.data, timestamp=entry.timestamp, user_id=key)
        self._entry = entry
        logger.debug(f"Stored {len(entry.data or [])} expense(s) in cache for key: {key}")

    def clear(self) -> None:
        """Resets the slot to the empty entry."""
        self._entry = CacheEntry.empty()
        logger.info("Cleared expense cache.")
