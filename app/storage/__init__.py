"""Object storage for ticket photos."""

from .object_store import (
    HttpObjectStorage,
    LocalObjectStorage,
    ObjectStorage,
    StorageError,
    StoredObject,
    create_object_storage,
)

__all__ = [
    "HttpObjectStorage",
    "LocalObjectStorage",
    "ObjectStorage",
    "StorageError",
    "StoredObject",
    "create_object_storage",
]
