"""
In-memory storage backends.

Used by the tests and for throwaway sessions. Stored profiles are deep
copies, so mutating a loaded profile never changes what is stored until
it is saved again.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from neobudget.models.audit import AuditEvent
from neobudget.models.ledger import UserProfile
from neobudget.services.storage.interface import (
    AuditStorageInterface,
    ProfileStorageInterface,
    normalize_user_key,
)


class InMemoryProfileStorage(ProfileStorageInterface):

    def __init__(self):
        self._profiles: dict[str, UserProfile] = {}
        self.save_count = 0

    async def load_profile(self, user_key: str) -> Optional[UserProfile]:
        stored = self._profiles.get(normalize_user_key(user_key))
        return stored.model_copy(deep=True) if stored is not None else None

    async def save_profile(self, user_key: str, profile: UserProfile) -> UserProfile:
        stamped = profile.model_copy(deep=True, update={"last_updated": datetime.now(timezone.utc)})
        self._profiles[normalize_user_key(user_key)] = stamped
        self.save_count += 1
        return stamped.model_copy(deep=True)

    async def delete_profile(self, user_key: str) -> bool:
        return self._profiles.pop(normalize_user_key(user_key), None) is not None


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [event for event in self.events if event.correlation_id == correlation_id]

    async def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        return [
            event for event in self.events
            if event.entity_type == entity_type and event.entity_id == entity_id
        ]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]
