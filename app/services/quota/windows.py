# app/services/quota/windows.py
"""
Fixed-window rollover rules for usage counters.

Timestamps are stored the way pymongo returns them: naive datetimes in UTC.
Day and month boundaries are evaluated in the configured quota timezone.
"""
import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.exceptions import ConfigurationError
from app.core.plans import FEATURE_FIELDS, Window


@dataclass(frozen=True)
class ResetPlan:
    reset_daily: bool = False
    reset_monthly: bool = False

    @property
    def needed(self) -> bool:
        return self.reset_daily or self.reset_monthly


def utc_now() -> datetime:
    # MongoDB keeps millisecond precision; truncating keeps read-back values equal
    now = datetime.utcnow()
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def resolve_timezone(name: str) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigurationError(f"Unknown quota timezone '{name}'")


def _to_local(moment: datetime, tz: tzinfo) -> datetime:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz)


def start_of_day(now: datetime, tz: tzinfo = timezone.utc) -> datetime:
    local = _to_local(now, tz)
    return datetime(local.year, local.month, local.day, tzinfo=tz)


def _clamped_day(year: int, month: int, day: int) -> int:
    return min(day, calendar.monthrange(year, month)[1])


def start_of_billing_period(now: datetime, renewal_day: int = 1, tz: tzinfo = timezone.utc) -> datetime:
    """
    Midnight of the most recent renewal day at or before ``now``.

    A renewal day past the end of a short month falls on that month's last day,
    so a subscription renewing on the 31st renews on Feb 28/29.
    """
    if not 1 <= renewal_day <= 31:
        raise ConfigurationError(f"Renewal day must be between 1 and 31, got {renewal_day}")
    local = _to_local(now, tz)
    year, month = local.year, local.month
    if local.day < _clamped_day(year, month, renewal_day):
        first_of_month = datetime(year, month, 1)
        previous = first_of_month - timedelta(days=1)
        year, month = previous.year, previous.month
    return datetime(year, month, _clamped_day(year, month, renewal_day), tzinfo=tz)


def evaluate_reset(
    now: datetime,
    last_daily_reset: Optional[datetime],
    last_monthly_reset: Optional[datetime],
    renewal_day: int = 1,
    tz: tzinfo = timezone.utc,
) -> ResetPlan:
    """
    Decide which counter windows have rolled over since they were last zeroed.

    Daily counters roll over at local midnight. Monthly counters roll over at the
    start of the billing period, which for ``renewal_day=1`` is the first of the
    calendar month. A missing timestamp always triggers a reset.
    """
    reset_daily = last_daily_reset is None or _to_local(last_daily_reset, tz) < start_of_day(now, tz)
    reset_monthly = (
        last_monthly_reset is None
        or _to_local(last_monthly_reset, tz) < start_of_billing_period(now, renewal_day, tz)
    )
    return ResetPlan(reset_daily=reset_daily, reset_monthly=reset_monthly)


def build_reset_update(plan: ResetPlan, now: datetime) -> dict:
    """Single ``$set`` document zeroing the rolled-over counters together with their timestamps."""
    update = {}
    if plan.reset_daily:
        update["usage.daily"] = {field: 0 for field in FEATURE_FIELDS[Window.DAILY].values()}
        update["usage.last_daily_reset"] = now
    if plan.reset_monthly:
        update["usage.monthly"] = {field: 0 for field in FEATURE_FIELDS[Window.MONTHLY].values()}
        update["usage.last_monthly_reset"] = now
    return update
