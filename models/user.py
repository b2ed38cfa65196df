"""
User model for RollWithdraw
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class AccountStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    DISABLED = "disabled"


class UserProfile(BaseModel):
    """A row of the remote `users` table."""
    id: str
    auth_id: str
    email: str
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    status: Optional[str] = AccountStatus.ACTIVE.value
    preferred_currency: Optional[str] = "EUR"
    current_subscription_id: Optional[str] = None
    subscription_start_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    referred_by: Optional[str] = None
    created_at: Optional[datetime] = None


class SignInRequest(BaseModel):
    email: EmailStr
    password: str
    redirect_from: Optional[str] = Field(default=None, alias="from")


class SignUpRequest(BaseModel):
    email: EmailStr
    username: str
    password: str
    confirm_password: str
    referral_code: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class PasswordChange(BaseModel):
    new_password: str
    confirm_password: str


class ProfileUpdate(BaseModel):
    username: Optional[str] = None
    preferred_currency: Optional[str] = None


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    redirect: str
    user: UserProfile
