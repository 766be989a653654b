from fastapi import Request, status
from fastapi.responses import JSONResponse


class ConfigurationError(Exception):
    """Raised when the limit table or counter mapping is inconsistent. Surfaced at startup."""


class StorageUnavailableError(Exception):
    """Raised when the user store cannot be reached for a load or persist."""

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message)
        self.message = message
        self.operation = operation


class UserNotFoundError(Exception):
    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class QuotaExceededError(Exception):
    """
    Raised by the request guards when a quota check rejects a request.

    Carries the rejected decision so the handler can render the current usage,
    the ceiling and the remedy that fits the window.
    """

    def __init__(self, decision):
        super().__init__(f"Quota exceeded for {decision.feature.value} ({decision.window.value})")
        self.decision = decision


RESET_TIME_BY_REMEDY = {
    "try_tomorrow": "tomorrow",
    "try_next_billing_period": "next billing period",
    "upgrade_plan": None,
}


async def quota_exceeded_handler(request: Request, exc: QuotaExceededError):
    decision = exc.decision
    if decision.remedy == "upgrade_plan":
        message = f"You've reached your maximum limit for {decision.feature.value} ({decision.current}/{decision.ceiling})."
    else:
        message = f"You've reached your {decision.window.value} limit for this feature ({decision.current}/{decision.ceiling})."
    return JSONResponse(
        content={
            "status": "error",
            "message": message,
            "feature": decision.feature.value,
            "window": decision.window.value,
            "limit": decision.ceiling,
            "current": decision.current,
            "reset_time": RESET_TIME_BY_REMEDY.get(decision.remedy),
            "remedy": decision.remedy,
            "upgrade_tier": True, # Frontend shows the upgrade prompt
        },
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    )


async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError):
    return JSONResponse(
        content={"status": "error", "message": "Usage limits could not be verified. Please try again shortly."},
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


async def user_not_found_handler(request: Request, exc: UserNotFoundError):
    return JSONResponse(
        content={"status": "error", "message": "User not found"},
        status_code=status.HTTP_404_NOT_FOUND,
    )
