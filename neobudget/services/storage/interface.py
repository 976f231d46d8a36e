"""
Abstract Storage Interface

Profiles are stored as one document per user and replaced wholesale on
every save: the last write wins and nothing is merged. Audit events are
append-only.

Backends implement these interfaces; business logic only sees the
interfaces.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from neobudget.models.audit import AuditEvent
from neobudget.models.ledger import UserProfile


class ProfileStorageInterface(ABC):
    """
    Abstract interface for per-user profile storage.

    `user_key` is whatever identifies the user to the caller (usually the
    login email); backends treat it case-insensitively.
    """

    @abstractmethod
    async def load_profile(self, user_key: str) -> Optional[UserProfile]:
        """
        Load a user's profile.

        Returns:
            The profile, or None if the user has none yet

        Raises:
            StorageError: If the stored document cannot be read
        """
        pass

    @abstractmethod
    async def save_profile(self, user_key: str, profile: UserProfile) -> UserProfile:
        """
        Replace the stored profile.

        Returns:
            The profile as stored, with `last_updated` stamped

        Raises:
            StorageError: If the save fails
        """
        pass

    @abstractmethod
    async def delete_profile(self, user_key: str) -> bool:
        """
        Delete a user's profile.

        Returns:
            True if a profile existed and was deleted
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events of one batch or sync round, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Events about one entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent events, newest first."""
        pass


def normalize_user_key(user_key: str) -> str:
    key = (user_key or "").strip().lower()
    if not key:
        raise StorageError("User key is required")
    return key


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not reach the storage backend."""
    pass
