import logging
from fastapi import APIRouter, HTTPException, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from pymongo.errors import DuplicateKeyError
from bson import ObjectId
from bson.errors import InvalidId
from datetime import datetime
from app.schemas.auth import SignupRequest, RefreshTokenRequest
from app.core.security import hash_password, create_access_token, create_refresh_token, verify_password, decode_refresh_token
from app.core.plans import Tier, get_initial_usage
from app.database.connection import get_mongo_db
from app.database.models import UserModel
from app.schemas.users import UserOut

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/signup", status_code=201)
async def signup(data: SignupRequest, db = Depends(get_mongo_db)):
    existing_user = await db["users"].find_one({"email": data.email.lower()})
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    now = datetime.utcnow()
    user = UserModel(
        name=data.username,
        email=data.email.lower(),
        password=hash_password(data.password),
        created_at=now,
        updated_at=now,
        tier=Tier.FREE,
        usage=get_initial_usage(),  # Zero-valued counters, windows start now
    )

    try:
        user_result = await db["users"].insert_one(user.model_dump())
    except DuplicateKeyError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    user_id = str(user_result.inserted_id)
    logger.info(f"Registered user {user_id}")
    return {
        "message": "Registration successful.",
        "user_id": user_id,
        "access_token": create_access_token({"sub": user_id}),
        "refresh_token": create_refresh_token({"sub": user_id}),
    }


@router.post("/login")
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db = Depends(get_mongo_db)):
    user = await db["users"].find_one({"email": form_data.username.lower()})

    if not user or not verify_password(form_data.password, user["password"]):
        raise HTTPException(status_code=400, detail="Invalid credentials")

    user["_id"] = str(user["_id"])
    access_token = create_access_token({"sub": user["_id"]})
    refresh_token = create_refresh_token({"sub": user["_id"]})
    content = {
        "user": UserOut.model_validate(user),
        "refresh_token": refresh_token,
        "access_token": access_token,
        "token_type": "bearer",
    }
    return JSONResponse(content=jsonable_encoder(content), status_code=status.HTTP_200_OK)


@router.post("/refresh")
async def refresh_token(data: RefreshTokenRequest, db = Depends(get_mongo_db)):
    payload = decode_refresh_token(data.refresh_token)
    if payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    user_id = payload.get("sub")
    try:
        user = await db["users"].find_one({"_id": ObjectId(user_id)}, {"_id": 1})
    except (InvalidId, TypeError):
        user = None

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return JSONResponse(
        content={"access_token": create_access_token({"sub": str(user["_id"])}), "token_type": "bearer"},
        status_code=status.HTTP_200_OK,
    )
