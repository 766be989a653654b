import logging
from fastapi import Depends
from app.core.config import settings
from app.core.exceptions import QuotaExceededError, StorageUnavailableError
from app.core.plans import Feature, Window, collection_for, counter_path, limit_table
from app.database.connection import get_mongo_db
from app.database.usage import UsageRepository
from app.services.auth_services import get_current_user
from app.services.quota.enforcer import QuotaDecision, QuotaEnforcer

logger = logging.getLogger(__name__)


def get_usage_repository(db = Depends(get_mongo_db)) -> UsageRepository:
    return UsageRepository(db)

def get_quota_enforcer(repository: UsageRepository = Depends(get_usage_repository)) -> QuotaEnforcer:
    return QuotaEnforcer(repository, limit_table, settings)


async def refresh_usage(
    current_user: dict = Depends(get_current_user),
    enforcer: QuotaEnforcer = Depends(get_quota_enforcer),
):
    """Router-level dependency keeping the caller's counters current for the whole request."""
    try:
        await enforcer.refresh(current_user["_id"])
    except StorageUnavailableError:
        if not enforcer.fail_open:
            raise
        logger.warning(f"Skipping usage refresh for user {current_user['_id']}: store unavailable")


def require_quota(window: Window, feature: Feature):
    """
    Dependency factory charging one use of ``feature`` in ``window`` before the route runs.

    Rejections raise ``QuotaExceededError`` (HTTP 429). Usage is consumed up front,
    so a route that fails afterwards has still spent its quota.
    """
    counter_path(window, feature) # Unmapped pairs fail when routes are declared

    async def dependency(
        current_user: dict = Depends(get_current_user),
        enforcer: QuotaEnforcer = Depends(get_quota_enforcer),
    ) -> QuotaDecision:
        decision = await enforcer.check_and_consume(current_user["_id"], window, feature)
        if not decision.allowed:
            raise QuotaExceededError(decision)
        return decision

    return dependency


def require_storage(feature: Feature):
    """Dependency factory rejecting creation when the caller already holds their maximum of ``feature``."""
    collection_for(feature)

    async def dependency(
        current_user: dict = Depends(get_current_user),
        enforcer: QuotaEnforcer = Depends(get_quota_enforcer),
    ) -> QuotaDecision:
        decision = await enforcer.check_storage_limit(current_user["_id"], feature)
        if not decision.allowed:
            raise QuotaExceededError(decision)
        return decision

    return dependency


def usage_payload(*decisions: QuotaDecision) -> dict:
    """Usage snapshot returned alongside a feature response."""
    return {
        f"{decision.window.value}.{decision.feature.value}": {
            "current": decision.current,
            "limit": "unlimited" if decision.ceiling is None else decision.ceiling,
        }
        for decision in decisions
    }
