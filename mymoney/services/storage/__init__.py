"""
Storage Services Package

Provides the abstract blob store interface and its implementations.
The JSON file store is the default; the in-memory store backs tests.
"""

from mymoney.services.storage.interface import (
    BlobStoreInterface,
    StorageError,
)
from mymoney.services.storage.json_file import JsonFileBlobStore
from mymoney.services.storage.memory import InMemoryBlobStore

__all__ = [
    # Interface
    "BlobStoreInterface",
    # Exceptions
    "StorageError",
    # Implementations
    "InMemoryBlobStore",
    "JsonFileBlobStore",
]
