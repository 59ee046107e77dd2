"""
Abstract Storage Interface

DESIGN DECISION: Persistence is a plain async key-value store of strings.
This allows us to:
1. Swap the JSON file for browser-style local storage or a database later
2. Use in-memory storage for testing
3. Keep the ledger decoupled from where its blob lives

The ledger always reads and writes full snapshots under one key, so
the interface needs nothing beyond get/set/remove.
"""

from abc import ABC, abstractmethod
from typing import Optional


class BlobStoreInterface(ABC):
    """
    Abstract interface for key-value blob storage.

    Any storage implementation (JSON file, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: Storage key (e.g. '@transacoes')

        Returns:
            The stored string, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """
        Store a value under a key, replacing any previous value.

        Raises:
            StorageError: If the backend cannot be written
        """
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        """
        Remove a key. Removing an absent key is not an error.

        Raises:
            StorageError: If the backend cannot be written
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass
