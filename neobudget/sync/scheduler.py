"""
Windowed Sync Scheduler

Runs one sync round against the feed:

1. Plan the request windows from the cursor and the requested lookback
2. Refuse the whole round if the plan exceeds the daily request cap
3. Fetch the windows one after another, never in parallel
4. Map each window's rows and pass them through the duplicate filter,
   seeded with the existing ledger and everything accepted so far
5. On full success, return the drafts together with a cursor advanced
   to the request time

Any window failure aborts the round with SyncRoundError. The round
itself never commits anything: the caller applies `SyncResult.accepted`
and `SyncResult.cursor` together, so a failed or discarded round leaves
the ledger and the cursor exactly as they were.
"""

import time
from typing import Iterable, Optional

from neobudget.config import get_settings
from neobudget.ledger.fingerprint import DuplicateFilter
from neobudget.models.feed import FeedAccountSet, SyncPlan, SyncResult, SyncWindow
from neobudget.models.ledger import AccountRole, SyncCursor, TransactionDraft
from neobudget.services.feed import FeedClient, FeedError
from neobudget.sync.mapping import map_feed_accounts
from neobudget.sync.planner import check_capacity, plan_sync


class SyncRoundError(Exception):
    """A window of the round failed; nothing from the round may be applied."""

    def __init__(self, window_index: int, window: SyncWindow, cause: Exception):
        self.window_index = window_index
        self.window = window
        self.cause = cause
        super().__init__(
            f"Sync window {window_index + 1} "
            f"[{window.start_epoch}, {window.end_epoch}) failed: {cause}"
        )


class SyncScheduler:
    """
    Plans and executes sync rounds for one feed.

    Args:
        feed_client: The feed collaborator
        max_span_days / daily_request_cap / overlap_days / feed_name:
            Override the configured SyncSettings values
    """

    def __init__(
        self,
        feed_client: FeedClient,
        max_span_days: Optional[int] = None,
        daily_request_cap: Optional[int] = None,
        overlap_days: Optional[int] = None,
        feed_name: Optional[str] = None,
    ):
        settings = get_settings().sync
        self._client = feed_client
        self._settings = settings
        self.max_span_days = max_span_days if max_span_days is not None else settings.max_span_days
        self.daily_request_cap = daily_request_cap if daily_request_cap is not None else settings.daily_request_cap
        self.overlap_days = overlap_days if overlap_days is not None else settings.overlap_days
        self.feed_name = feed_name or settings.feed_name

    def plan(
        self,
        cursor: SyncCursor,
        requested_days_back: Optional[int] = None,
        now_epoch: Optional[int] = None,
    ) -> SyncPlan:
        """Plan a round without checking capacity or fetching anything."""
        return plan_sync(
            requested_days_back if requested_days_back is not None else self._settings.default_days_back,
            now_epoch if now_epoch is not None else int(time.time()),
            cursor.last_sync_epoch,
            self.max_span_days,
            self.overlap_days,
        )

    async def _fetch(
        self,
        cursor: SyncCursor,
        index: int,
        window: SyncWindow,
        include_pending: bool,
    ) -> FeedAccountSet:
        try:
            response = await self._client.fetch_window(
                cursor.access_credential,
                window.start_epoch,
                window.end_epoch,
                include_pending,
            )
            if not isinstance(response, FeedAccountSet):
                response = FeedAccountSet.model_validate(response)
            return response
        except (FeedError, OSError, ValueError) as e:
            raise SyncRoundError(index, window, e) from e

    async def run_round(
        self,
        cursor: SyncCursor,
        existing_ledger: Iterable[TransactionDraft],
        requested_days_back: Optional[int] = None,
        now_epoch: Optional[int] = None,
        include_pending: Optional[bool] = None,
        roles: Iterable[AccountRole] = (),
    ) -> SyncResult:
        """
        Execute one round.

        Raises:
            CapacityExceededError: before any request is sent
            SyncRoundError: a window failed; the round produced nothing
        """
        now_epoch = now_epoch if now_epoch is not None else int(time.time())
        if include_pending is None:
            include_pending = self._settings.include_pending
        roles = list(roles)

        plan = self.plan(cursor, requested_days_back, now_epoch)
        check_capacity(plan, self.daily_request_cap)

        seen = DuplicateFilter(existing_ledger)
        accepted: list[TransactionDraft] = []
        duplicates = 0
        dropped = 0
        feed_errors: list[str] = []
        accounts: set[str] = set()

        for index, window in enumerate(plan.windows):
            account_set = await self._fetch(cursor, index, window, include_pending)
            feed_errors.extend(account_set.errors)
            accounts.update(account.id for account in account_set.accounts)

            drafts, zero_rows = map_feed_accounts(account_set, self.feed_name, now_epoch, roles)
            dropped += zero_rows
            for draft in drafts:
                if seen.admit(draft):
                    accepted.append(draft)
                else:
                    duplicates += 1

        return SyncResult(
            plan=plan,
            accepted=accepted,
            duplicates=duplicates,
            dropped_zero_amount=dropped,
            feed_errors=feed_errors,
            accounts_seen=len(accounts),
            cursor=cursor.model_copy(update={"last_sync_epoch": now_epoch}),
        )
