# app/services/quota/enforcer.py
"""
Quota enforcement for metered features.

``check_and_consume`` guards time-windowed counters (daily, monthly) and
``check_storage_limit`` guards permanent ceilings measured by live entity
counts. Both return a ``QuotaDecision``; neither raises on a plain rejection.

Storage failures follow one policy for every call site, picked by
``QUOTA_FAIL_OPEN``: fail-closed (default) propagates
``StorageUnavailableError``, fail-open allows the request uncounted.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import ConfigurationError, StorageUnavailableError, UserNotFoundError
from app.core.plans import (
    FEATURE_FIELDS,
    STORAGE_COLLECTIONS,
    UNLIMITED,
    Feature,
    Tier,
    TierLimitTable,
    Window,
    collection_for,
    counter_path,
    field_for,
    is_unlimited,
    limit_table,
)
from app.database.models import UsageRecord
from app.database.usage import UsageRepository
from app.services.quota.windows import build_reset_update, evaluate_reset, resolve_timezone, utc_now

logger = logging.getLogger(__name__)

MAX_RESET_ATTEMPTS = 3

REMEDY_BY_WINDOW = {
    Window.DAILY: "try_tomorrow",
    Window.MONTHLY: "try_next_billing_period",
    Window.PERMANENT: "upgrade_plan",
}


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    window: Window
    feature: Feature
    current: Optional[int] = None
    ceiling: Optional[int] = None # None means unlimited
    counted: bool = False

    @property
    def remedy(self) -> Optional[str]:
        if self.allowed:
            return None
        return REMEDY_BY_WINDOW[self.window]


class QuotaEnforcer:
    def __init__(
        self,
        repository: UsageRepository,
        limits: TierLimitTable = limit_table,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.limits = limits
        self.clock = clock
        self.tz = resolve_timezone(settings.QUOTA_TIMEZONE)
        self.renewal_day = settings.QUOTA_RENEWAL_DAY
        self.align_to_billing_cycle = settings.QUOTA_ALIGN_TO_BILLING_CYCLE
        self.fail_open = settings.QUOTA_FAIL_OPEN
        self.track_unlimited = settings.QUOTA_TRACK_UNLIMITED
        if not 1 <= self.renewal_day <= 31:
            raise ConfigurationError(f"QUOTA_RENEWAL_DAY must be between 1 and 31, got {self.renewal_day}")

    def renewal_day_for(self, record: UsageRecord) -> int:
        # Free users have no billing cycle, even if a lapsed subscription left an end date behind
        if self.align_to_billing_cycle and record.tier is not Tier.FREE and record.subscription_end_date:
            return record.subscription_end_date.day
        return self.renewal_day

    async def _load(self, user_id: str) -> UsageRecord:
        record = await self.repository.load_usage_record(user_id)
        if record is None:
            raise UserNotFoundError(user_id)
        return record

    async def refresh(self, user_id: str) -> UsageRecord:
        """Load the user's usage, zeroing any counter window that has rolled over."""
        record = await self._load(user_id)
        for _ in range(MAX_RESET_ATTEMPTS):
            now = self.clock()
            plan = evaluate_reset(
                now,
                record.usage.last_daily_reset,
                record.usage.last_monthly_reset,
                self.renewal_day_for(record),
                self.tz,
            )
            if not plan.needed:
                return record
            applied = await self.repository.apply_reset(user_id, record.usage, build_reset_update(plan, now))
            if applied:
                logger.info(
                    f"Reset usage counters for user {user_id} (daily={plan.reset_daily}, monthly={plan.reset_monthly})"
                )
            # Either our reset landed or a concurrent request's did; read the current state
            record = await self._load(user_id)
        return record

    async def check_and_consume(self, user_id: str, window: Window, feature: Feature) -> QuotaDecision:
        """
        Charge one use of ``feature`` against the user's ``window`` ceiling.

        The increment only happens when the stored counter is below the ceiling, in
        the same database operation as the comparison. A rejected call leaves the
        counter untouched.
        """
        if window is Window.PERMANENT:
            raise ConfigurationError(f"Permanent ceilings are enforced with check_storage_limit, not '{feature.value}' counters")
        path = counter_path(window, feature)
        try:
            record = await self.refresh(user_id)
            ceiling = self.limits.limit_for(record.tier, window, feature)

            if is_unlimited(ceiling):
                current = record.counter(window, feature)
                if self.track_unlimited:
                    await self.repository.increment(user_id, path)
                    current += 1
                return QuotaDecision(True, window, feature, current=current, ceiling=None, counted=self.track_unlimited)

            updated = await self.repository.increment_if_below(user_id, path, ceiling)
        except StorageUnavailableError as e:
            return self._on_storage_failure(user_id, window, feature, e)

        if updated is not None:
            current = updated["usage"][window.value][field_for(window, feature)]
            return QuotaDecision(True, window, feature, current=current, ceiling=ceiling, counted=True)

        # The ceiling is reached; re-reading the counter only fills in the report
        try:
            current = (await self._load(user_id)).counter(window, feature)
        except StorageUnavailableError as e:
            logger.warning(f"Could not re-read {window.value} {feature.value} for user {user_id}: {e}")
            current = max(ceiling, record.counter(window, feature))
        logger.info(
            f"Quota reached for user {user_id}: {window.value} {feature.value} {current}/{ceiling} ({record.tier.value})"
        )
        return QuotaDecision(False, window, feature, current=current, ceiling=ceiling)

    async def check_storage_limit(self, user_id: str, feature: Feature) -> QuotaDecision:
        """
        Check a permanent ceiling against the live number of stored entities.

        Only free-tier users are counted. Nothing is written; creating the entity
        afterwards is what consumes the quota.
        """
        collection = collection_for(feature)
        try:
            record = await self._load(user_id)
            if record.tier is not Tier.FREE:
                return QuotaDecision(True, Window.PERMANENT, feature)

            ceiling = self.limits.limit_for(record.tier, Window.PERMANENT, feature)
            if is_unlimited(ceiling):
                return QuotaDecision(True, Window.PERMANENT, feature)

            count = await self.repository.count_entities(user_id, collection)
            if count >= ceiling:
                logger.info(f"Storage limit reached for user {user_id}: {feature.value} {count}/{ceiling}")
                return QuotaDecision(False, Window.PERMANENT, feature, current=count, ceiling=ceiling)
            return QuotaDecision(True, Window.PERMANENT, feature, current=count, ceiling=ceiling)
        except StorageUnavailableError as e:
            return self._on_storage_failure(user_id, Window.PERMANENT, feature, e)

    def _on_storage_failure(self, user_id: str, window: Window, feature: Feature, error: StorageUnavailableError) -> QuotaDecision:
        if not self.fail_open:
            raise error
        logger.warning(
            f"Usage store unavailable during {error.operation or 'quota check'} for user {user_id}; "
            f"allowing {window.value} {feature.value} uncounted"
        )
        return QuotaDecision(True, window, feature, counted=False)

    async def summarize(self, user_id: str) -> dict:
        """Current usage, ceiling and remaining allowance for every feature on the user's tier."""
        record = await self.refresh(user_id)
        summary = {}
        for window in (Window.DAILY, Window.MONTHLY):
            summary[window.value] = {
                feature.value: _usage_entry(
                    record.counter(window, feature),
                    self.limits.limit_for(record.tier, window, feature),
                )
                for feature in FEATURE_FIELDS[window]
            }
        permanent = {}
        for feature, collection in STORAGE_COLLECTIONS.items():
            count = await self.repository.count_entities(user_id, collection)
            ceiling = self.limits.limit_for(record.tier, Window.PERMANENT, feature)
            if record.tier is not Tier.FREE:
                ceiling = UNLIMITED
            permanent[feature.value] = _usage_entry(count, ceiling)
        summary[Window.PERMANENT.value] = permanent
        summary["tier"] = record.tier.value
        return summary


def _usage_entry(current: int, ceiling: int) -> dict:
    if is_unlimited(ceiling):
        return {"current": current, "limit": "unlimited", "remaining": "unlimited"}
    return {"current": current, "limit": ceiling, "remaining": max(0, ceiling - current)}
