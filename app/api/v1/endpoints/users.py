from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from app.api.deps import get_quota_enforcer
from app.services.auth_services import get_current_user
from app.services.quota.enforcer import QuotaEnforcer
from app.schemas.users import UserOut

router = APIRouter()

@router.get("/me")
async def read_users_me(current_user: dict = Depends(get_current_user)):
    return JSONResponse(content={
        "status": "success",
        "message": "User data",
        "data": jsonable_encoder(UserOut.model_validate(current_user))
        },
        status_code=status.HTTP_200_OK)


@router.get("/me/usage")
async def read_my_usage(
    current_user: dict = Depends(get_current_user),
    enforcer: QuotaEnforcer = Depends(get_quota_enforcer),
):
    """Per-feature usage against the caller's tier ceilings, with live counts for storage limits."""
    summary = await enforcer.summarize(current_user["_id"])
    return JSONResponse(content={
        "status": "success",
        "message": "Usage data",
        "data": summary,
        },
        status_code=status.HTTP_200_OK)
