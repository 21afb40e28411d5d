"""Pydantic schemas for User and Auth."""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional

from querydesk.domain.models.user import Role


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(min_length=6)
    role: Optional[Role] = None


class RegisterResponse(BaseModel):
    email: str
    requires_verification: bool = True


class VerifyOTPRequest(BaseModel):
    email: EmailStr
    otp: str


class StaffCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(min_length=6)
    role: Role


class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    role: Role

    model_config = {"from_attributes": True}


class UserRead(UserSummary):
    is_verified: bool
    created_at: Optional[datetime] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
