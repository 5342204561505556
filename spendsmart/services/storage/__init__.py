"""
Storage Services Package

Provides the key-value store interface, its in-memory and JSON-file
implementations, and the typed PersistentStore adapter on top.
"""

from spendsmart.services.storage.interface import (
    KeyValueStoreInterface,
    StorageError,
    UnknownKeyError,
)
from spendsmart.services.storage.backends import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)
from spendsmart.services.storage.local_store import (
    BUDGETS_KEY,
    STORE_KEYS,
    THEME_KEY,
    TRANSACTIONS_KEY,
    USER_KEY,
    PersistentStore,
)

__all__ = [
    # Interface
    "KeyValueStoreInterface",
    # Exceptions
    "StorageError",
    "UnknownKeyError",
    # Backends
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    # Adapter
    "BUDGETS_KEY",
    "STORE_KEYS",
    "THEME_KEY",
    "TRANSACTIONS_KEY",
    "USER_KEY",
    "PersistentStore",
]
