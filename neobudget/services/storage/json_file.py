"""
JSON file storage backends.

Profiles: one camelCase JSON document per user under
`<data_dir>/profiles/`, named by a hash of the user key. A save writes a
temporary file and renames it over the old one, so a reader sees either
the previous or the new document.

Audit: one JSON object per line, appended to `<data_dir>/<audit_log_name>`.

Filesystem writes are retried with exponential backoff on OSError.
"""

import hashlib
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from neobudget.config import get_settings
from neobudget.models.audit import AuditEvent
from neobudget.models.ledger import UserProfile
from neobudget.services.storage.interface import (
    AuditStorageInterface,
    ProfileStorageInterface,
    StorageError,
    normalize_user_key,
)

_retry_io = retry(
    retry=retry_if_exception_type(OSError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    reraise=True,
)


@_retry_io
def _write_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


@_retry_io
def _append_line(path: Path, line: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(line + "\n")


class JsonFileProfileStorage(ProfileStorageInterface):
    """
    Profile storage on the local filesystem.

    Args:
        data_dir: Root directory; defaults to the configured `data_dir`.
    """

    def __init__(self, data_dir: Optional[Union[str, Path]] = None):
        root = data_dir if data_dir is not None else get_settings().storage.data_dir
        self._dir = Path(root) / "profiles"

    def path_for(self, user_key: str) -> Path:
        digest = hashlib.sha256(normalize_user_key(user_key).encode("utf-8")).hexdigest()
        return self._dir / f"{digest}.json"

    async def load_profile(self, user_key: str) -> Optional[UserProfile]:
        path = self.path_for(user_key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return UserProfile.from_record(data)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to load profile: {e}") from e

    async def save_profile(self, user_key: str, profile: UserProfile) -> UserProfile:
        stamped = profile.model_copy(deep=True, update={"last_updated": datetime.now(timezone.utc)})
        try:
            _write_atomic(self.path_for(user_key), json.dumps(stamped.to_record(), indent=2))
        except OSError as e:
            raise StorageError(f"Failed to save profile: {e}") from e
        return stamped

    async def delete_profile(self, user_key: str) -> bool:
        path = self.path_for(user_key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete profile: {e}") from e
        return True


class JsonLinesAuditStorage(AuditStorageInterface):
    """Append-only audit log in JSON Lines format."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        if path is None:
            storage = get_settings().storage
            path = Path(storage.data_dir) / storage.audit_log_name
        self._path = Path(path)

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            _append_line(self._path, event.to_json_line())
            return True
        except OSError:
            # Audit failures never break the main flow; the logger reports them.
            return False

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        events = []
        try:
            with self._path.open(encoding="utf-8") as handle:
                for line in handle:
                    if not line.strip():
                        continue
                    try:
                        events.append(AuditEvent.model_validate(json.loads(line)))
                    except (ValueError, PydanticValidationError):
                        continue
        except OSError as e:
            raise StorageError(f"Failed to read audit log: {e}") from e
        return events

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [event for event in self._read_events() if event.correlation_id == correlation_id]

    async def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        return [
            event for event in self._read_events()
            if event.entity_type == entity_type and event.entity_id == entity_id
        ]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._read_events()))[:limit]
