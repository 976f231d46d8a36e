"""
Storage Services Package

Abstract interfaces plus in-memory and JSON-file implementations for
profile documents and the audit log.
"""

from neobudget.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    NotFoundError,
    ProfileStorageInterface,
    StorageError,
)
from neobudget.services.storage.json_file import (
    JsonFileProfileStorage,
    JsonLinesAuditStorage,
)
from neobudget.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryProfileStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ProfileStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryProfileStorage",
    "JsonFileProfileStorage",
    "JsonLinesAuditStorage",
]
