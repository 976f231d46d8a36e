"""Windowed, rate-limited synchronization with the bank-aggregation feed."""

from neobudget.sync.mapping import (
    classify,
    entry_epoch,
    external_id,
    map_feed_accounts,
    map_feed_transaction,
)
from neobudget.sync.planner import CapacityExceededError, check_capacity, plan_sync
from neobudget.sync.scheduler import SyncRoundError, SyncScheduler

__all__ = [
    "CapacityExceededError",
    "SyncRoundError",
    "SyncScheduler",
    "check_capacity",
    "classify",
    "entry_epoch",
    "external_id",
    "map_feed_accounts",
    "map_feed_transaction",
    "plan_sync",
]
