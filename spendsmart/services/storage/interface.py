"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the raw key-value
store that holds serialized collections. This allows us to:
1. Use an in-memory store for testing
2. Back the Streamlit app with a JSON file on disk
3. Swap in another backend later without touching business logic

The interface mirrors browser local storage on purpose: string keys,
string values, whole-value writes, synchronous calls.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for a synchronous string key-value store.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Read the raw text stored under a key.

        Args:
            key: Storage key

        Returns:
            The stored text, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """
        Replace the text stored under a key.

        Args:
            key: Storage key
            value: Serialized value

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """
        Remove a key. Removing an absent key is a no-op.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List the keys currently stored."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class UnknownKeyError(StorageError):
    """Key is not one of the recognized storage keys."""
    pass
