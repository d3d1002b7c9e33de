"""Pydantic schemas for auth and user endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from kurator.users.models import UserRole


class LoginRequest(BaseModel):
    login: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: int
    login: str
    role: UserRole
    is_first_login: bool


class UserCreate(BaseModel):
    login: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8)
    role: UserRole


class UserUpdate(BaseModel):
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    new_password: Optional[str] = Field(None, min_length=8)


class PasswordChange(BaseModel):
    new_password: str = Field(..., min_length=8)


class UserResponse(BaseModel):
    id: int
    login: str
    role: UserRole
    is_active: bool
    is_first_login: bool
    mfa_enabled: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
