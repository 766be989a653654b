from pydantic import BaseModel, EmailStr, Field

class SignupRequest(BaseModel):
    username: str
    email: EmailStr
    password: str = Field(..., min_length=8)

class RefreshTokenRequest(BaseModel):
    refresh_token: str
