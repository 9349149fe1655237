# FILE: grantplan/schemas/auth.py
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class DevLoginRequest(BaseModel):
    email: str
    name: str = "Test user"
    role: str = Field("user", pattern="^(user|admin)$")


class UserResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str
    email: str
    name: str
    role: str
    credits: int
    provider: Optional[str] = None
    created_at: str


class TokenResponse(BaseModel):
    token: str
    user: UserResponse
