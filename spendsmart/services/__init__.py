"""Services package."""

from spendsmart.services.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStoreInterface,
    PersistentStore,
    StorageError,
    UnknownKeyError,
)

__all__ = [
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStoreInterface",
    "PersistentStore",
    "StorageError",
    "UnknownKeyError",
]
