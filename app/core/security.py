from passlib.context import CryptContext
from datetime import datetime, timedelta
from typing import Optional
from app.core.config import settings
from jose import jwt, JWTError, ExpiredSignatureError
from fastapi import HTTPException, status

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def hash_password(password: str):
    return pwd_context.hash(password)

def verify_password(plain, hashed):
    return pwd_context.verify(plain, hashed)


def _create_token(data: dict, secret: str, token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({
        "exp": datetime.utcnow() + expires_delta,
        "type": token_type,  # Access and refresh tokens are not interchangeable
    })
    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM)

def _decode_token(token: str, secret: str, label: str) -> dict:
    try:
        return jwt.decode(token, secret, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"{label} has expired")
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid {label.lower()}")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    expires_delta = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _create_token(data, settings.SECRET_KEY, "access", expires_delta)

def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None):
    expires_delta = expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _create_token(data, settings.JWT_REFRESH_SECRET_KEY, "refresh", expires_delta)

def decode_token(token: str):
    return _decode_token(token, settings.SECRET_KEY, "Token")

def decode_refresh_token(token: str):
    return _decode_token(token, settings.JWT_REFRESH_SECRET_KEY, "Refresh token")
