"""
Recurring rule projection.

`project` turns the rule set into the concrete ledger entries still
missing for one month. It never looks at the clock: the caller names the
period, which makes forward projection and backfill the same operation.

At most one generated entry exists per rule per month. An entry counts as
generated when its `recurring_id` is the rule's id and its date falls in
the month, whether it was created by an earlier call or the rule has
since been disabled.
"""

from typing import Iterable

from neobudget.dates import days_in_month, is_month_key, iter_months
from neobudget.models.ledger import RecurringRule, TransactionDraft


def projected_date(rule: RecurringRule, period: str) -> str:
    """Entry date for `rule` in `period`, clamping the day to the month length."""
    day = min(max(rule.day_of_month, 1), days_in_month(period))
    return f"{period}-{day:02d}"


def _generated_in(period: str, ledger: Iterable[TransactionDraft]) -> set[str]:
    return {
        entry.recurring_id
        for entry in ledger
        if entry.recurring_id and entry.date.startswith(period)
    }


def project(
    rules: Iterable[RecurringRule],
    target_period: str,
    existing_ledger: Iterable[TransactionDraft],
) -> list[TransactionDraft]:
    """
    Entries to append for `target_period` (YYYY-MM). Does not mutate anything.

    Rules that are disabled, or whose start month is after the period,
    produce nothing.
    """
    if not is_month_key(target_period):
        raise ValueError(f"Target period must be YYYY-MM, got {target_period!r}")

    already = _generated_in(target_period, existing_ledger)
    drafts = []
    for rule in rules:
        if not rule.enabled or rule.start_month > target_period:
            continue
        if rule.id in already:
            continue
        drafts.append(TransactionDraft(
            date=projected_date(rule, target_period),
            description=rule.description,
            amount=rule.amount,
            type=rule.type,
            category=rule.category,
            debt_account_id=rule.debt_account_id,
            asset_account_id=rule.asset_account_id,
            recurring_id=rule.id,
            source="recurring",
        ))
        already.add(rule.id)
    return drafts


def project_range(
    rules: Iterable[RecurringRule],
    from_period: str,
    to_period: str,
    existing_ledger: Iterable[TransactionDraft],
) -> list[TransactionDraft]:
    """
    Backfill every month from `from_period` to `to_period` inclusive.

    Each month sees the output of the months before it, so the result is
    as idempotent as a single-month projection.
    """
    rules = list(rules)
    ledger = list(existing_ledger)
    drafts: list[TransactionDraft] = []
    for period in iter_months(from_period, to_period):
        generated = project(rules, period, ledger)
        ledger.extend(generated)
        drafts.extend(generated)
    return drafts
