"""
Audit Models for NeoBudget

Every ledger mutation and every external round-trip is recorded as an
audit event. This provides:
1. Traceability of where each ledger entry came from
2. Debugging information when an import or sync fails
3. The ability to reconstruct what a sync round covered

Audit logs are append-only. Events are never modified or deleted.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ingestion
    TRANSACTIONS_INGESTED = "transactions_ingested"
    DUPLICATES_SKIPPED = "duplicates_skipped"
    RECORD_REJECTED = "record_rejected"
    STATEMENT_EXTRACTION_FAILED = "statement_extraction_failed"

    # Ledger edits
    TRANSACTION_EDITED = "transaction_edited"
    TRANSACTION_DELETED = "transaction_deleted"
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_EDITED = "account_edited"
    ACCOUNT_DELETED = "account_deleted"
    CATEGORY_BUDGET_SET = "category_budget_set"
    CATEGORY_BUDGET_REMOVED = "category_budget_removed"
    LEDGER_CLEARED = "ledger_cleared"

    # Recurring
    RECURRING_RULE_ADDED = "recurring_rule_added"
    RECURRING_RULE_EDITED = "recurring_rule_edited"
    RECURRING_RULE_DELETED = "recurring_rule_deleted"
    RECURRING_PROJECTED = "recurring_projected"

    # Feed
    FEED_CONNECTED = "feed_connected"
    FEED_DISCONNECTED = "feed_disconnected"
    SYNC_PLANNED = "sync_planned"
    SYNC_COMPLETED = "sync_completed"
    SYNC_FAILED = "sync_failed"
    CAPACITY_EXCEEDED = "capacity_exceeded"

    # Persistence
    PROFILE_LOADED = "profile_loaded"
    PROFILE_SAVED = "profile_saved"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'debt', 'sync_round')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one sync round)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_json_line(self) -> str:
        """Single-line JSON for append-only audit files."""
        return json.dumps(self.to_log_dict(), default=str, sort_keys=True)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transactions_ingested("csv", 12, 3, correlation_id)
        event = AuditEventBuilder.sync_failed(1, "timeout", correlation_id)
    """

    @staticmethod
    def transactions_ingested(
        source: str,
        accepted: int,
        duplicates: int,
        rejected: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_INGESTED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Ingested {accepted} transaction(s) from {source}",
            details={
                "source": source,
                "accepted": accepted,
                "duplicates": duplicates,
                "rejected": rejected,
            },
            is_user_action=source != "recurring",
        )

    @staticmethod
    def duplicates_skipped(
        source: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATES_SKIPPED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Skipped {count} duplicate(s) from {source}",
            details={"source": source, "count": count},
        )

    @staticmethod
    def record_rejected(
        source: str,
        index: int,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="record",
            correlation_id=correlation_id,
            description=f"Rejected record {index} from {source}",
            details={"source": source, "index": index, "reason": reason},
        )

    @staticmethod
    def statement_extraction_failed(
        filename: str,
        reason: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="file",
            entity_id=filename,
            correlation_id=correlation_id,
            description=f"Statement extraction failed for {filename}: {reason}",
            error_message=error_message,
            details={"filename": filename, "reason": reason},
        )

    @staticmethod
    def transaction_edited(transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_EDITED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction edited",
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def account_created(kind: str, account_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type=kind,
            entity_id=account_id,
            description=f"{kind.capitalize()} account created: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def account_edited(kind: str, account_id: str, fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_EDITED,
            entity_type=kind,
            entity_id=account_id,
            description=f"{kind.capitalize()} account edited",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def account_deleted(
        kind: str,
        account_id: str,
        unlinked_transactions: int,
        unlinked_rules: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            entity_type=kind,
            entity_id=account_id,
            description=f"{kind.capitalize()} account deleted",
            details={
                "unlinked_transactions": unlinked_transactions,
                "unlinked_rules": unlinked_rules,
            },
            is_user_action=True,
        )

    @staticmethod
    def category_budget_set(category: str, target: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_BUDGET_SET,
            entity_type="budget",
            entity_id=category,
            description=f"Budget for {category} set to {target}",
            details={"target": target},
            is_user_action=True,
        )

    @staticmethod
    def category_budget_removed(category: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_BUDGET_REMOVED,
            entity_type="budget",
            entity_id=category,
            description=f"Budget for {category} removed",
            is_user_action=True,
        )

    @staticmethod
    def ledger_cleared(transaction_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_CLEARED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            description=f"Ledger cleared ({transaction_count} transactions removed)",
            details={"transaction_count": transaction_count},
            is_user_action=True,
        )

    @staticmethod
    def recurring_rule_added(rule_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_RULE_ADDED,
            entity_type="recurring_rule",
            entity_id=rule_id,
            description=f"Recurring rule added: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def recurring_rule_edited(rule_id: str, fields: list[str]) -> AuditEvent:
        """Covers field edits and active toggles; `fields` names what changed."""
        return AuditEvent(
            event_type=AuditEventType.RECURRING_RULE_EDITED,
            entity_type="recurring_rule",
            entity_id=rule_id,
            description="Recurring rule edited",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def recurring_rule_deleted(rule_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_RULE_DELETED,
            entity_type="recurring_rule",
            entity_id=rule_id,
            description="Recurring rule deleted",
            is_user_action=True,
        )

    @staticmethod
    def recurring_projected(
        period: str,
        generated: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_PROJECTED,
            entity_type="period",
            entity_id=period,
            correlation_id=correlation_id,
            description=f"Projected {generated} recurring entr{'y' if generated == 1 else 'ies'} for {period}",
            details={"period": period, "generated": generated},
        )

    @staticmethod
    def feed_connected(feed: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEED_CONNECTED,
            entity_type="feed",
            entity_id=feed,
            description=f"Connected to {feed}; sync history reset",
            is_user_action=True,
        )

    @staticmethod
    def feed_disconnected(feed: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEED_DISCONNECTED,
            entity_type="feed",
            entity_id=feed,
            description=f"Disconnected from {feed}",
            is_user_action=True,
        )

    @staticmethod
    def sync_planned(
        mode: str,
        windows: list[tuple[int, int]],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_PLANNED,
            entity_type="sync_round",
            correlation_id=correlation_id,
            description=f"Planned {mode} sync with {len(windows)} request(s)",
            details={"mode": mode, "windows": [list(w) for w in windows]},
        )

    @staticmethod
    def sync_completed(
        accepted: int,
        duplicates: int,
        cursor_epoch: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_COMPLETED,
            entity_type="sync_round",
            correlation_id=correlation_id,
            description=f"Sync completed: {accepted} new, {duplicates} duplicate(s)",
            details={
                "accepted": accepted,
                "duplicates": duplicates,
                "cursor_epoch": cursor_epoch,
            },
        )

    @staticmethod
    def sync_failed(
        window_index: Optional[int],
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        where = f"window {window_index}" if window_index is not None else "round setup"
        return AuditEvent(
            event_type=AuditEventType.SYNC_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="sync_round",
            correlation_id=correlation_id,
            description=f"Sync failed at {where}; cursor left unchanged",
            error_message=error_message,
            details={"window_index": window_index},
        )

    @staticmethod
    def capacity_exceeded(
        planned: int,
        cap: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CAPACITY_EXCEEDED,
            severity=AuditSeverity.WARNING,
            entity_type="sync_round",
            correlation_id=correlation_id,
            description=f"Sync needs {planned} requests but only {cap} are allowed per day",
            details={"planned": planned, "cap": cap},
        )

    @staticmethod
    def profile_loaded(user_key: str, transaction_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_LOADED,
            entity_type="profile",
            entity_id=user_key,
            description="Profile loaded",
            details={"transaction_count": transaction_count},
        )

    @staticmethod
    def profile_saved(user_key: str, transaction_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_SAVED,
            entity_type="profile",
            entity_id=user_key,
            description="Profile saved",
            details={"transaction_count": transaction_count},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
