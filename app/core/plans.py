# app/core/plans.py
"""
Subscription tiers, their usage ceilings and the counter fields that track them.

Every feature key lives in the closed ``Feature`` enum. The limit table, the
counter field mapping and the route guards all index by that enum, so a
misspelt key fails at import instead of silently creating a new counter.
"""
import logging
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from app.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

UNLIMITED = -1 # Any negative ceiling disables enforcement


class Tier(str, Enum):
    FREE = "free"
    PRO = "creator_pro"
    AGENCY = "agency_growth"


class Window(str, Enum):
    DAILY = "daily" # resets every day at midnight
    MONTHLY = "monthly" # resets on the renewal day
    PERMANENT = "permanent" # never resets, enforced against live entity counts


class Feature(str, Enum):
    SEARCH_QUERIES = "search_queries"
    SEO_ANALYSES = "seo_analyses"
    TREND_IDEATIONS = "trend_ideations"
    INSIGHTS_SAVED = "insights_saved"
    SCRIPT_GENERATION = "script_generation"
    CONTENT_IDEATIONS = "content_ideations"
    REFINEMENTS = "refinements"
    SCRIPT_TRANSFORMATIONS = "script_transformations"
    SAVED_IDEAS = "saved_ideas"
    CALENDAR_ITEMS = "calendar_items"
    INSIGHTS_TOTAL = "insights_total"


# Counter attribute inside usage.daily / usage.monthly for each metered feature
FEATURE_FIELDS = {
    Window.DAILY: {
        Feature.SEARCH_QUERIES: "search_count",
        Feature.SEO_ANALYSES: "seo_analyses",
        Feature.TREND_IDEATIONS: "trend_ideations",
        Feature.INSIGHTS_SAVED: "insights_saved",
        Feature.SCRIPT_GENERATION: "scripts_generated",
    },
    Window.MONTHLY: {
        Feature.CONTENT_IDEATIONS: "ideations_this_month",
        Feature.REFINEMENTS: "refinements_this_month",
        Feature.SCRIPT_GENERATION: "scripts_generated_this_month",
        Feature.SCRIPT_TRANSFORMATIONS: "script_transformations_this_month",
    },
}

# Collection counted for each permanent (storage) ceiling
STORAGE_COLLECTIONS = {
    Feature.SAVED_IDEAS: "saved_ideas",
    Feature.CALENDAR_ITEMS: "scheduled_ideas",
    Feature.INSIGHTS_TOTAL: "insights",
}

USER_PLANS = {
    Tier.FREE: {
        Window.DAILY: {
            Feature.SEARCH_QUERIES: 5,
            Feature.SEO_ANALYSES: 3,
            Feature.TREND_IDEATIONS: 5,
            Feature.INSIGHTS_SAVED: 10,
            Feature.SCRIPT_GENERATION: 3,
        },
        Window.MONTHLY: {
            Feature.CONTENT_IDEATIONS: 5,
            Feature.REFINEMENTS: 3,
            Feature.SCRIPT_GENERATION: 15,
            Feature.SCRIPT_TRANSFORMATIONS: 0, # Not available on free
        },
        Window.PERMANENT: {
            Feature.CALENDAR_ITEMS: 100,
            Feature.SAVED_IDEAS: 200,
            Feature.INSIGHTS_TOTAL: 200,
        },
    },
    Tier.PRO: {
        Window.DAILY: {
            Feature.SEARCH_QUERIES: 10,
            Feature.SEO_ANALYSES: 5,
            Feature.TREND_IDEATIONS: 5,
            Feature.INSIGHTS_SAVED: 10,
        },
        Window.MONTHLY: {
            Feature.CONTENT_IDEATIONS: UNLIMITED,
            Feature.REFINEMENTS: UNLIMITED,
            Feature.SCRIPT_GENERATION: UNLIMITED,
            Feature.SCRIPT_TRANSFORMATIONS: UNLIMITED,
        },
        Window.PERMANENT: {
            Feature.CALENDAR_ITEMS: UNLIMITED,
            Feature.SAVED_IDEAS: UNLIMITED,
            Feature.INSIGHTS_TOTAL: UNLIMITED,
        },
    },
    Tier.AGENCY: {
        # High values rather than unlimited so heavy use stays visible
        Window.DAILY: {
            Feature.SEARCH_QUERIES: 1000,
            Feature.SEO_ANALYSES: 500,
            Feature.TREND_IDEATIONS: 500,
            Feature.INSIGHTS_SAVED: 1000,
        },
        Window.MONTHLY: {
            Feature.CONTENT_IDEATIONS: UNLIMITED,
            Feature.REFINEMENTS: UNLIMITED,
            Feature.SCRIPT_GENERATION: UNLIMITED,
            Feature.SCRIPT_TRANSFORMATIONS: UNLIMITED,
        },
        Window.PERMANENT: {
            Feature.CALENDAR_ITEMS: UNLIMITED,
            Feature.SAVED_IDEAS: UNLIMITED,
            Feature.INSIGHTS_TOTAL: UNLIMITED,
        },
    },
}


def is_unlimited(ceiling: int) -> bool:
    return ceiling < 0


def field_for(window: Window, feature: Feature) -> str:
    """Counter attribute tracking ``feature`` in ``window``. Misses are configuration errors."""
    try:
        return FEATURE_FIELDS[window][feature]
    except KeyError:
        raise ConfigurationError(f"No {window.value} counter field mapped for feature '{feature.value}'")


def counter_path(window: Window, feature: Feature) -> str:
    """Dotted MongoDB path of the counter, e.g. ``usage.daily.search_count``."""
    return f"usage.{window.value}.{field_for(window, feature)}"


def collection_for(feature: Feature) -> str:
    try:
        return STORAGE_COLLECTIONS[feature]
    except KeyError:
        raise ConfigurationError(f"No storage collection mapped for feature '{feature.value}'")


def resolve_tier(value: Optional[str]) -> Tier:
    """Tier stored on a user document. Missing or unknown values fall back to free."""
    if not value:
        return Tier.FREE
    try:
        return Tier(value)
    except ValueError:
        logger.warning(f"Unknown subscription tier '{value}', applying free tier limits")
        return Tier.FREE


class TierLimitTable:
    """
    Immutable tier x window x feature -> ceiling lookup.

    Built once at startup and injected into the enforcer. Construction validates
    the whole table so a bad plan definition stops the process from booting
    rather than failing a request later.
    """

    def __init__(self, plans: Mapping[Tier, Mapping[Window, Mapping[Feature, int]]]):
        self._plans = MappingProxyType({
            tier: MappingProxyType({
                window: MappingProxyType(dict(limits))
                for window, limits in windows.items()
            })
            for tier, windows in plans.items()
        })
        self.validate()

    def validate(self) -> None:
        for tier in Tier:
            if tier not in self._plans:
                raise ConfigurationError(f"Tier '{tier.value}' has no limit entry")
        for tier, windows in self._plans.items():
            if not isinstance(tier, Tier):
                raise ConfigurationError(f"Unknown tier key {tier!r} in limit table")
            for window, limits in windows.items():
                if not isinstance(window, Window):
                    raise ConfigurationError(f"Unknown window key {window!r} for tier '{tier.value}'")
                for feature, ceiling in limits.items():
                    if not isinstance(feature, Feature):
                        raise ConfigurationError(f"Unknown feature key {feature!r} for tier '{tier.value}'")
                    if not isinstance(ceiling, int) or isinstance(ceiling, bool):
                        raise ConfigurationError(
                            f"Ceiling for {tier.value}/{window.value}/{feature.value} must be an int, got {ceiling!r}"
                        )
                    if window is Window.PERMANENT:
                        collection_for(feature)
                    else:
                        field_for(window, feature)

    def limit_for(self, tier: Tier, window: Window, feature: Feature) -> int:
        # Features a tier does not list for a window are not metered there
        return self._plans[tier].get(window, {}).get(feature, UNLIMITED)


limit_table = TierLimitTable(USER_PLANS)


# Helper function to initialize the usage record for a new user
def get_initial_usage(now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    return {
        Window.DAILY.value: {field: 0 for field in FEATURE_FIELDS[Window.DAILY].values()},
        Window.MONTHLY.value: {field: 0 for field in FEATURE_FIELDS[Window.MONTHLY].values()},
        "last_daily_reset": now,
        "last_monthly_reset": now,
    }
