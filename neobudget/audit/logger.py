"""
Audit Logger

Every ledger mutation, import and sync round is logged. The logger:
- Always writes a structured local log line
- Optionally appends the event to an audit store
- Never lets an audit store failure break the operation being audited
- Carries correlation IDs so one batch or sync round can be traced
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from neobudget.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from neobudget.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store (for persistence), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("neobudget.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_ingested(
        self,
        source: str,
        accepted: int,
        duplicates: int,
        rejected: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log the outcome of one ingestion batch."""
        await self.log(AuditEventBuilder.transactions_ingested(
            source=source,
            accepted=accepted,
            duplicates=duplicates,
            rejected=rejected,
            correlation_id=correlation_id,
        ))
        if duplicates:
            await self.log(AuditEventBuilder.duplicates_skipped(
                source=source,
                count=duplicates,
                correlation_id=correlation_id,
            ))

    async def log_rejected(
        self,
        source: str,
        index: int,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_rejected(
            source=source,
            index=index,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_extraction_failed(
        self,
        filename: str,
        reason: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.statement_extraction_failed(
            filename=filename,
            reason=reason,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_recurring_projected(
        self,
        period: str,
        generated: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.recurring_projected(
            period=period,
            generated=generated,
            correlation_id=correlation_id,
        ))

    async def log_sync_planned(
        self,
        mode: str,
        windows: list[tuple[int, int]],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.sync_planned(
            mode=mode,
            windows=windows,
            correlation_id=correlation_id,
        ))

    async def log_sync_completed(
        self,
        accepted: int,
        duplicates: int,
        cursor_epoch: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.sync_completed(
            accepted=accepted,
            duplicates=duplicates,
            cursor_epoch=cursor_epoch,
            correlation_id=correlation_id,
        ))

    async def log_sync_failed(
        self,
        window_index: Optional[int],
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.sync_failed(
            window_index=window_index,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_capacity_exceeded(
        self,
        planned: int,
        cap: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.capacity_exceeded(
            planned=planned,
            cap=cap,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a batch or sync round and pass it through
    every event the operation produces.
    """
    return uuid4()
