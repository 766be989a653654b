from app.database.connection import get_mongo_db
from app.core.security import decode_token
from fastapi import Depends, HTTPException, status
from bson import ObjectId
from bson.errors import InvalidId
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

security_scheme = HTTPBearer() # Define a security scheme for protected routes

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
    db = Depends(get_mongo_db)
) -> dict:
    """
    Dependency that resolves the bearer token to the user document.
    Usage counters are kept current by the quota dependencies, not here.
    """
    payload = decode_token(credentials.credentials)
    if payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")

    user_id = payload.get("sub")
    try:
        user_doc = await db["users"].find_one({"_id": ObjectId(user_id)}, {"password": 0})
    except (InvalidId, TypeError):
        user_doc = None

    if not user_doc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized, user not found")

    user_doc["_id"] = str(user_doc["_id"])
    return user_doc
