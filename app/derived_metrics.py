"""Fallback formulas for bill metrics the extractor left empty.

Each rule only reads fields that came from the extractor, so the rules are
independent of each other and applying them twice changes nothing.
"""
from __future__ import annotations

from bill_schema import BillRecord

# A bill covering roughly one calendar month is treated as one month of usage.
MONTHLY_PERIOD_MIN_DAYS = 28
MONTHLY_PERIOD_MAX_DAYS = 32


def fallback_daily_usage(record: BillRecord) -> float | None:
    """total_usage_kwh / billing_days, or None when days are unknown or zero."""
    if not record.billing_days:
        return None
    return record.total_usage_kwh / record.billing_days


def fallback_monthly_usage(record: BillRecord) -> float | None:
    """total_usage_kwh when the billing period is about one month long."""
    days = record.billing_days
    if days is None:
        return None
    if MONTHLY_PERIOD_MIN_DAYS <= days <= MONTHLY_PERIOD_MAX_DAYS:
        return record.total_usage_kwh
    return None


def resolve_derived_metrics(record: BillRecord) -> BillRecord:
    """Return a copy of ``record`` with missing averages filled in.

    Only average_daily_usage and average_monthly_usage have fallbacks;
    generation_cost, green_incentive and usage_history stay as extracted.
    """
    updates: dict[str, float] = {}

    if record.average_daily_usage is None:
        daily = fallback_daily_usage(record)
        if daily is not None:
            updates["average_daily_usage"] = daily

    if record.average_monthly_usage is None:
        monthly = fallback_monthly_usage(record)
        if monthly is not None:
            updates["average_monthly_usage"] = monthly

    if not updates:
        return record
    return record.model_copy(update=updates)
