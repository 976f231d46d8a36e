"""
Main Orchestrator for NeoBudget

Ties the components together into the end-to-end flows:
1. Ingestion (manual entry, CSV file, AI statement extraction)
2. Ledger edits (transactions, accounts, rules, budgets)
3. Recurring projection (one month or a backfill range)
4. Feed sync (connect, disconnect, status, sync round)
5. Sign-in (credentials to an open session)

The orchestrator enforces the boundaries:
- Every batch passes through the duplicate filter before it is appended
- Per-record failures are reported, never allowed to abort a batch
- A sync round is applied all at once or not at all
- Every step is audited and marks the session dirty for the debounced save
"""

import time
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping, NamedTuple, Optional
from uuid import UUID

from neobudget.audit import AuditLogger, create_correlation_id
from neobudget.config import get_settings
from neobudget.ingestion import (
    ParseErr,
    guess_mime,
    model_hint_for,
    normalize_extracted,
    normalize_manual,
    parse_csv,
)
from neobudget.models.audit import AuditEventBuilder
from neobudget.models.feed import SyncResult, SyncStatus
from neobudget.models.ledger import AssetAccount, DebtAccount, RecurringRule, Transaction
from neobudget.models.reports import (
    CsvImportResult,
    FileImportReport,
    IngestResult,
    RejectedRecord,
    StatementImportResult,
)
from neobudget.services.auth import Authenticator
from neobudget.services.extraction import ExtractionError, ExtractionFailure, StatementExtractor
from neobudget.services.feed import (
    FeedClient,
    FeedNotConnectedError,
    parse_claim_url,
    validate_access_url,
)
from neobudget.services.storage import (
    InMemoryAuditStorage,
    InMemoryProfileStorage,
    JsonFileProfileStorage,
    JsonLinesAuditStorage,
    ProfileStorageInterface,
)
from neobudget.session import LedgerSession
from neobudget.sync import CapacityExceededError, SyncRoundError, SyncScheduler
from neobudget.validation import (
    LedgerValidationError,
    RecurringRuleValidator,
    TransactionValidator,
    raise_for_issues,
)


class StatementFile(NamedTuple):
    """One uploaded statement."""
    filename: str
    content: bytes
    mime_type: Optional[str] = None


async def _audit(session: LedgerSession, event) -> None:
    if session.audit_logger:
        await session.audit_logger.log(event)


class IngestionFlow:
    """
    Orchestrates the three ingestion paths.

    Flow (every path):
    1. Normalize → source shape to drafts, rejecting bad records one by one
    2. Deduplicate and append → LedgerStore.ingest
    3. Audit → batch outcome plus each rejected record
    4. Mark the session dirty
    """

    def __init__(
        self,
        extractor: Optional[StatementExtractor] = None,
    ):
        self._extractor = extractor
        self._settings = get_settings().imports

    async def _finish(
        self,
        session: LedgerSession,
        source: str,
        result: IngestResult,
        correlation_id: UUID,
    ) -> IngestResult:
        if session.audit_logger:
            await session.audit_logger.log_ingested(
                source=source,
                accepted=result.accepted_count,
                duplicates=result.duplicates,
                rejected=len(result.rejected),
                correlation_id=correlation_id,
            )
            for record in result.rejected:
                await session.audit_logger.log_rejected(
                    source=record.source or source,
                    index=record.index,
                    reason=record.reason,
                    correlation_id=correlation_id,
                )
        if result.accepted:
            session.mark_dirty()
        return result

    async def add_manual(
        self,
        session: LedgerSession,
        raw: Mapping[str, Any],
        today: Optional[date] = None,
    ) -> IngestResult:
        """
        Add one manually entered transaction.

        Raises:
            LedgerValidationError: the entry is invalid (also audited)
        """
        correlation_id = create_correlation_id()
        validator = TransactionValidator(
            debt_ids=[account.id for account in session.store.debts],
            asset_ids=[account.id for account in session.store.assets],
            today=today,
        )
        try:
            draft = normalize_manual(raw, today=today, validator=validator)
        except LedgerValidationError as e:
            if session.audit_logger:
                await session.audit_logger.log_rejected("manual", 0, e.reason, correlation_id)
            raise
        result = session.store.ingest([draft])
        return await self._finish(session, "manual", result, correlation_id)

    async def import_csv(
        self,
        session: LedgerSession,
        text: str,
        filename: str = "import.csv",
        today: Optional[date] = None,
    ) -> tuple[CsvImportResult, IngestResult]:
        """Parse a CSV statement, merge its rows and apply its budget targets."""
        correlation_id = create_correlation_id()
        parsed = parse_csv(text, source=filename, today=today)
        result = session.store.ingest(parsed.transactions, parsed.rejected)
        if parsed.budgets:
            session.store.set_category_budgets(parsed.budgets)
            session.mark_dirty()
        await self._finish(session, filename, result, correlation_id)
        return parsed, result

    def category_hints(self, session: LedgerSession) -> list[str]:
        """Categories already in use, offered to the extractor."""
        categories = {entry.category for entry in session.store.transactions}
        categories.update(session.store.category_budgets)
        return sorted(category for category in categories if category)

    async def import_statements(
        self,
        session: LedgerSession,
        files: Iterable[StatementFile],
        model: Optional[str] = None,
        today: Optional[date] = None,
    ) -> StatementImportResult:
        """
        Extract, normalize and merge a batch of statement files.

        A file that fails (too large, extractor error, unreadable response)
        is reported in its FileImportReport; the other files still load.

        Raises:
            ValueError: more files than allowed per batch, or no extractor
        """
        files = list(files)
        if self._extractor is None:
            raise ValueError("No statement extractor configured")
        if not files:
            raise ValueError("No files provided")
        if len(files) > self._settings.max_files:
            raise ValueError(f"Too many files: {len(files)} (max {self._settings.max_files})")

        correlation_id = create_correlation_id()
        hints = self.category_hints(session)
        reports: list[FileImportReport] = []
        drafts = []
        rejected: list[RejectedRecord] = []

        for statement in files:
            mime_type = statement.mime_type or guess_mime(statement.filename)
            model_hint = model_hint_for(statement.filename, mime_type, model)
            size = len(statement.content)
            report = FileImportReport(
                filename=statement.filename,
                mime_type=mime_type,
                size_bytes=size,
                model_hint=model_hint,
                ok=False,
            )

            try:
                if size > self._settings.max_file_size_bytes:
                    raise ExtractionError(
                        ExtractionFailure.FILE_TOO_LARGE,
                        f"File too large: {size / (1024 * 1024):.1f}MB "
                        f"(max {self._settings.max_file_size_mb}MB)",
                    )
                raw = await self._extractor.extract_transactions(
                    statement.content, mime_type, hints, model_hint
                )
                parsed = normalize_extracted(raw, statement.filename, today=today)
                if isinstance(parsed, ParseErr):
                    raise ExtractionError(ExtractionFailure.UNPARSABLE_RESPONSE, parsed.reason)
            except ExtractionError as e:
                report.error = str(e)
                reports.append(report)
                if session.audit_logger:
                    await session.audit_logger.log_extraction_failed(
                        filename=statement.filename,
                        reason=e.reason.value,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                continue

            report.ok = True
            report.transaction_count = len(parsed.transactions)
            reports.append(report)
            drafts.extend(parsed.transactions)
            rejected.extend(parsed.rejected)

        result = session.store.ingest(drafts, rejected)
        await self._finish(session, "statement import", result, correlation_id)
        return StatementImportResult(files=reports, ingest=result)


def _rule_validator(session: LedgerSession) -> RecurringRuleValidator:
    return RecurringRuleValidator(
        debt_ids=[account.id for account in session.store.debts],
        asset_ids=[account.id for account in session.store.assets],
    )


def _by_field_name(model: type, changes: Mapping[str, Any]) -> dict[str, Any]:
    """Rename camelCase keys to the model's field names."""
    names = {field.alias or name: name for name, field in model.model_fields.items()}
    return {names.get(key, key): value for key, value in changes.items()}


class LedgerEditFlow:
    """Audited edits of transactions, accounts, rules and budgets."""

    async def edit_transaction(
        self,
        session: LedgerSession,
        transaction_id: str,
        changes: Mapping[str, Any],
    ) -> Transaction:
        updated = session.store.edit_transaction(transaction_id, changes)
        await _audit(session, AuditEventBuilder.transaction_edited(transaction_id))
        session.mark_dirty()
        return updated

    async def delete_transaction(self, session: LedgerSession, transaction_id: str) -> Transaction:
        removed = session.store.delete_transaction(transaction_id)
        await _audit(session, AuditEventBuilder.transaction_deleted(transaction_id))
        session.mark_dirty()
        return removed

    async def add_debt(self, session: LedgerSession, name: str, starting_balance: Any = 0) -> DebtAccount:
        account = session.store.add_debt(name, starting_balance)
        await _audit(session, AuditEventBuilder.account_created("debt", account.id, account.name))
        session.mark_dirty()
        return account

    async def add_asset(self, session: LedgerSession, name: str, starting_balance: Any = 0) -> AssetAccount:
        account = session.store.add_asset(name, starting_balance)
        await _audit(session, AuditEventBuilder.account_created("asset", account.id, account.name))
        session.mark_dirty()
        return account

    async def delete_debt(self, session: LedgerSession, account_id: str) -> tuple[int, int]:
        unlinked = session.store.delete_debt(account_id)
        await _audit(session, AuditEventBuilder.account_deleted("debt", account_id, *unlinked))
        session.mark_dirty()
        return unlinked

    async def delete_asset(self, session: LedgerSession, account_id: str) -> tuple[int, int]:
        unlinked = session.store.delete_asset(account_id)
        await _audit(session, AuditEventBuilder.account_deleted("asset", account_id, *unlinked))
        session.mark_dirty()
        return unlinked

    async def add_recurring(self, session: LedgerSession, fields: Mapping[str, Any]) -> RecurringRule:
        """
        Validate and add a recurring rule.

        Raises:
            LedgerValidationError: the rule is invalid
        """
        raise_for_issues(_rule_validator(session).validate(fields))
        rule = session.store.add_recurring(fields)
        await _audit(session, AuditEventBuilder.recurring_rule_added(rule.id, rule.description))
        session.mark_dirty()
        return rule

    async def edit_recurring(
        self,
        session: LedgerSession,
        rule_id: str,
        changes: Mapping[str, Any],
    ) -> RecurringRule:
        """
        Validate the edited rule as a whole, then apply the changes.

        Raises:
            RecordNotFoundError: no rule with that id
            LedgerValidationError: the edited rule is invalid
        """
        current = session.store.get_recurring(rule_id)
        changes = _by_field_name(RecurringRule, changes)
        raise_for_issues(_rule_validator(session).validate({**current.model_dump(), **changes}))
        rule = session.store.edit_recurring(rule_id, changes)
        await _audit(session, AuditEventBuilder.recurring_rule_edited(rule_id, sorted(changes)))
        session.mark_dirty()
        return rule

    async def toggle_recurring(
        self,
        session: LedgerSession,
        rule_id: str,
        enabled: Optional[bool] = None,
    ) -> RecurringRule:
        rule = session.store.toggle_recurring(rule_id, enabled)
        await _audit(session, AuditEventBuilder.recurring_rule_edited(rule_id, ["enabled"]))
        session.mark_dirty()
        return rule

    async def delete_recurring(self, session: LedgerSession, rule_id: str) -> RecurringRule:
        rule = session.store.delete_recurring(rule_id)
        await _audit(session, AuditEventBuilder.recurring_rule_deleted(rule_id))
        session.mark_dirty()
        return rule

    async def edit_debt(self, session: LedgerSession, account_id: str, changes: Mapping[str, Any]) -> DebtAccount:
        account = session.store.edit_debt(account_id, changes)
        await _audit(session, AuditEventBuilder.account_edited("debt", account_id, sorted(changes)))
        session.mark_dirty()
        return account

    async def edit_asset(self, session: LedgerSession, account_id: str, changes: Mapping[str, Any]) -> AssetAccount:
        account = session.store.edit_asset(account_id, changes)
        await _audit(session, AuditEventBuilder.account_edited("asset", account_id, sorted(changes)))
        session.mark_dirty()
        return account

    async def set_category_budget(self, session: LedgerSession, category: str, monthly_limit: Any) -> Decimal:
        amount = session.store.set_category_budget(category, monthly_limit)
        await _audit(session, AuditEventBuilder.category_budget_set(category.strip(), str(amount)))
        session.mark_dirty()
        return amount

    async def remove_category_budget(self, session: LedgerSession, category: str) -> bool:
        removed = session.store.remove_category_budget(category)
        if removed:
            await _audit(session, AuditEventBuilder.category_budget_removed(category))
            session.mark_dirty()
        return removed

    async def clear_all(self, session: LedgerSession) -> int:
        count = session.store.clear_all()
        await _audit(session, AuditEventBuilder.ledger_cleared(count))
        session.mark_dirty()
        return count


class RecurringFlow:
    """Projects recurring rules into the ledger for a caller-chosen period."""

    async def apply(self, session: LedgerSession, period: str) -> list[Transaction]:
        correlation_id = create_correlation_id()
        added = session.store.apply_recurring(period)
        if session.audit_logger:
            await session.audit_logger.log_recurring_projected(period, len(added), correlation_id)
        if added:
            session.mark_dirty()
        return added

    async def backfill(self, session: LedgerSession, from_period: str, to_period: str) -> list[Transaction]:
        correlation_id = create_correlation_id()
        added = session.store.apply_recurring_range(from_period, to_period)
        if session.audit_logger:
            await session.audit_logger.log_recurring_projected(
                f"{from_period}..{to_period}", len(added), correlation_id
            )
        if added:
            session.mark_dirty()
        return added


class FeedSyncFlow:
    """
    Orchestrates the bank-aggregation feed.

    State per user: disconnected (no cursor), connected without history,
    connected with a last sync time. Connecting replaces any previous
    cursor; a sync only moves the cursor when the whole round succeeded.
    """

    def __init__(
        self,
        feed_client: FeedClient,
        scheduler: Optional[SyncScheduler] = None,
    ):
        self._client = feed_client
        self._scheduler = scheduler or SyncScheduler(feed_client)
        self._feed_name = get_settings().sync.feed_name

    def status(self, session: LedgerSession) -> SyncStatus:
        cursor = session.store.sync_cursor
        return SyncStatus(
            connected=cursor is not None,
            last_sync_epoch=cursor.last_sync_epoch if cursor else None,
        )

    async def connect(self, session: LedgerSession, setup_token: str) -> SyncStatus:
        """
        Claim a setup token and store the new credential with a fresh cursor.

        Raises:
            ClaimError: malformed token or rejected claim; nothing changes
        """
        claim_url = parse_claim_url(setup_token)
        access_credential = validate_access_url(await self._client.claim(claim_url))
        session.store.connect_feed(access_credential)
        await _audit(session, AuditEventBuilder.feed_connected(self._feed_name))
        session.mark_dirty()
        return self.status(session)

    async def disconnect(self, session: LedgerSession) -> SyncStatus:
        session.store.disconnect_feed()
        await _audit(session, AuditEventBuilder.feed_disconnected(self._feed_name))
        session.mark_dirty()
        return self.status(session)

    async def sync(
        self,
        session: LedgerSession,
        requested_days_back: Optional[int] = None,
        now_epoch: Optional[int] = None,
        include_pending: Optional[bool] = None,
    ) -> tuple[SyncResult, IngestResult]:
        """
        Run one sync round and apply it.

        Raises:
            FeedNotConnectedError: no feed connected
            CapacityExceededError: the round would exceed the daily cap
            SyncRoundError: a window failed; ledger and cursor unchanged
        """
        cursor = session.store.sync_cursor
        if cursor is None:
            raise FeedNotConnectedError("SimpleFIN not connected")

        correlation_id = create_correlation_id()
        logger = session.audit_logger
        now_epoch = now_epoch if now_epoch is not None else int(time.time())
        plan = self._scheduler.plan(cursor, requested_days_back, now_epoch)
        if logger:
            await logger.log_sync_planned(
                plan.mode.value,
                [(window.start_epoch, window.end_epoch) for window in plan.windows],
                correlation_id,
            )

        try:
            result = await self._scheduler.run_round(
                cursor,
                session.store.transactions,
                requested_days_back=requested_days_back,
                now_epoch=now_epoch,
                include_pending=include_pending,
                roles=session.profile.feed_account_roles,
            )
        except CapacityExceededError as e:
            if logger:
                await logger.log_capacity_exceeded(e.planned, e.cap, correlation_id)
            raise
        except SyncRoundError as e:
            if logger:
                await logger.log_sync_failed(e.window_index, str(e), correlation_id)
                await logger.log_external_service_error(self._feed_name, str(e.cause), correlation_id)
            raise

        ingested = session.store.commit_sync(result.accepted, result.cursor)
        session.mark_dirty()

        if logger:
            await logger.log_sync_completed(
                accepted=ingested.accepted_count,
                duplicates=result.duplicates + ingested.duplicates,
                cursor_epoch=result.cursor.last_sync_epoch,
                correlation_id=correlation_id,
            )
        return result, ingested


class ProfileFlow:
    """Signs a user in and opens their session."""

    def __init__(
        self,
        storage: ProfileStorageInterface,
        authenticator: Optional[Authenticator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._authenticator = authenticator
        self._audit_logger = audit_logger

    async def open(self, user_key: str) -> LedgerSession:
        return await LedgerSession.open(user_key, self._storage, self._audit_logger)

    async def sign_in(self, email: str, secret: str) -> LedgerSession:
        """
        Authenticate and open the user's session.

        Raises:
            AuthError: propagated unchanged, never retried
        """
        if self._authenticator is None:
            raise ValueError("No authenticator configured")
        user_key = await self._authenticator.authenticate(email, secret)
        return await self.open(user_key)


class AppComponents(NamedTuple):
    ingestion: IngestionFlow
    edits: LedgerEditFlow
    recurring: RecurringFlow
    feed: Optional[FeedSyncFlow]
    profiles: ProfileFlow


def create_app_components(
    use_storage: bool = True,
    feed_client: Optional[FeedClient] = None,
    extractor: Optional[StatementExtractor] = None,
    authenticator: Optional[Authenticator] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the JSON file backends under the
                    configured data_dir. Set to False for in-memory storage.
        feed_client: Feed collaborator; without it there is no feed flow.
        extractor: Statement extraction collaborator.
        authenticator: Credential verification collaborator.
    """
    if use_storage:
        profile_storage = JsonFileProfileStorage()
        audit_logger = AuditLogger(JsonLinesAuditStorage())
    else:
        profile_storage = InMemoryProfileStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    return AppComponents(
        ingestion=IngestionFlow(extractor=extractor),
        edits=LedgerEditFlow(),
        recurring=RecurringFlow(),
        feed=FeedSyncFlow(feed_client) if feed_client is not None else None,
        profiles=ProfileFlow(profile_storage, authenticator, audit_logger),
    )
