"""
Sync window planning.

Two modes, chosen by how far back the caller asks to look compared with
the feed's per-request span cap C:

- incremental (days back <= C): one request `[start, now)` where
  `start = max(now - days back, last sync - overlap)`; without a last
  sync the lower bound is just `now - days back`.
- backfill (days back > C): the cursor is ignored and
  `[now - days back, now)` is cut into contiguous windows of C days, the
  last one possibly shorter.

Planning is pure; `check_capacity` is the gate run before any request.
"""

from typing import Optional

from neobudget.dates import SECONDS_PER_DAY
from neobudget.models.feed import SyncMode, SyncPlan, SyncWindow


class CapacityExceededError(Exception):
    """The plan needs more requests than the daily cap allows."""

    def __init__(self, planned: int, cap: int):
        self.planned = planned
        self.cap = cap
        super().__init__(
            f"Sync needs {planned} requests but only {cap} are allowed per day; "
            "request a shorter range"
        )


def plan_sync(
    requested_days_back: int,
    now_epoch: int,
    last_sync_epoch: Optional[int],
    max_span_days: int,
    overlap_days: int,
) -> SyncPlan:
    """Ordered request windows for one round. `requested_days_back` is clamped to at least 1."""
    if max_span_days < 1:
        raise ValueError("max_span_days must be at least 1")
    days_back = max(1, int(requested_days_back))
    range_start = now_epoch - days_back * SECONDS_PER_DAY

    if days_back <= max_span_days:
        incremental_floor = 0
        if last_sync_epoch:
            incremental_floor = max(0, last_sync_epoch - overlap_days * SECONDS_PER_DAY)
        start = max(range_start, incremental_floor)
        windows = [SyncWindow(start_epoch=start, end_epoch=now_epoch)] if start < now_epoch else []
        return SyncPlan(
            mode=SyncMode.INCREMENTAL,
            now_epoch=now_epoch,
            requested_days_back=days_back,
            windows=windows,
        )

    span = max_span_days * SECONDS_PER_DAY
    windows = []
    start = range_start
    while start < now_epoch:
        end = min(start + span, now_epoch)
        windows.append(SyncWindow(start_epoch=start, end_epoch=end))
        start = end
    return SyncPlan(
        mode=SyncMode.BACKFILL,
        now_epoch=now_epoch,
        requested_days_back=days_back,
        windows=windows,
    )


def check_capacity(plan: SyncPlan, daily_request_cap: int) -> None:
    """Raise CapacityExceededError when the plan exceeds the cap."""
    if plan.request_count > daily_request_cap:
        raise CapacityExceededError(plan.request_count, daily_request_cap)
