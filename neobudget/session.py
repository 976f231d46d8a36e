"""
Session context for one signed-in user.

A LedgerSession bundles what every operation needs: the user key, the
profile being edited (through its LedgerStore), the profile storage and
the audit logger. Flows receive the session explicitly; nothing is kept
in module globals.

Saving is debounced by the caller. Each local edit calls `mark_dirty`,
and the caller invokes `flush` from whatever scheduling it already has
(a UI tick, a request end). The write happens once the profile has been
quiet for `debounce_seconds`. Saves replace the stored document
wholesale, so edits made concurrently in another session are lost.
"""

import time
from typing import Callable, Optional

from neobudget.audit import AuditLogger
from neobudget.config import get_settings
from neobudget.ledger.store import LedgerStore
from neobudget.models.audit import AuditEventBuilder
from neobudget.models.ledger import UserProfile
from neobudget.services.storage import ProfileStorageInterface


class PendingWrite:
    """
    Caller-owned debounce timer.

    Times are plain floats from the caller's clock (monotonic seconds by
    default), which keeps the timer testable without sleeping.
    """

    def __init__(self, quiet_seconds: Optional[float] = None):
        if quiet_seconds is None:
            quiet_seconds = get_settings().storage.debounce_seconds
        self.quiet_seconds = quiet_seconds
        self._last_touch: Optional[float] = None

    @property
    def dirty(self) -> bool:
        return self._last_touch is not None

    @property
    def due_at(self) -> Optional[float]:
        if self._last_touch is None:
            return None
        return self._last_touch + self.quiet_seconds

    def touch(self, now: float) -> None:
        """Record an edit; restarts the quiet period."""
        self._last_touch = now

    def is_due(self, now: float) -> bool:
        return self._last_touch is not None and now >= self.due_at

    def clear(self) -> None:
        self._last_touch = None


class LedgerSession:
    """
    Everything one user's operations run against.

    Use `LedgerSession.open` to load (or start) a profile from storage.
    """

    def __init__(
        self,
        user_key: str,
        profile: UserProfile,
        storage: ProfileStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        quiet_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.user_key = user_key
        self.store = LedgerStore(profile)
        self.storage = storage
        self.audit_logger = audit_logger
        self.pending = PendingWrite(quiet_seconds)
        self._clock = clock

    @property
    def profile(self) -> UserProfile:
        return self.store.profile

    @classmethod
    async def open(
        cls,
        user_key: str,
        storage: ProfileStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        quiet_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "LedgerSession":
        """Load the user's profile, or start an empty one."""
        profile = await storage.load_profile(user_key)
        if profile is None:
            profile = UserProfile()
        if audit_logger:
            await audit_logger.log(AuditEventBuilder.profile_loaded(user_key, len(profile.transactions)))
        return cls(user_key, profile, storage, audit_logger, quiet_seconds, clock)

    def mark_dirty(self, now: Optional[float] = None) -> None:
        self.pending.touch(self._clock() if now is None else now)

    async def flush(self, now: Optional[float] = None, force: bool = False) -> bool:
        """
        Save the profile if an edit is pending and the quiet period has passed.

        With `force`, save any pending edit immediately. Returns True if a
        save happened.
        """
        if not self.pending.dirty:
            return False
        if not force and not self.pending.is_due(self._clock() if now is None else now):
            return False
        await self.save()
        return True

    async def save(self) -> UserProfile:
        """Write the profile now, regardless of the debounce state."""
        stored = await self.storage.save_profile(self.user_key, self.store.profile)
        self.store.profile.last_updated = stored.last_updated
        self.pending.clear()
        if self.audit_logger:
            await self.audit_logger.log(AuditEventBuilder.profile_saved(self.user_key, len(stored.transactions)))
        return stored
