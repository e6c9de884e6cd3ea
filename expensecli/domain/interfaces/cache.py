"""Interface for the expense listing cache.

Defines the contract for storing, retrieving and clearing the last
successful expense listing. Freshness (TTL) is judged by the caller.
"""

import abc
from typing import Optional

# Import relevant domain models
from ..models.common import CacheKey
from ..models.expense import CacheEntry

class CacheStore(abc.ABC):
    """Abstract Base Class for cache operations."""

    @abc.abstractmethod
    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """Retrieves the entry stored for a key.

        Args:
            key: The effective identity the listing was fetched for.

        Returns:
            The cache entry if one holding data exists for the key, otherwise None.
        """
        pass

    @abc.abstractmethod
    def set(self, key: CacheKey, entry: CacheEntry) -> None:
        """Stores an entry, replacing whatever was stored before.

        Args:
            key: The effective identity the listing was fetched for.
            entry: The entry to store.
        """
        pass

    @abc.abstractmethod
    def clear(self) -> None:
        """Discards every stored entry."""
        pass
