"""
Referral models for RollWithdraw
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum


class ReferralStatus(str, Enum):
    PENDING = "pending"
    SIGNED_UP = "signed_up"
    COMPLETED = "completed"
    EXPIRED = "expired"


class ReferralCode(BaseModel):
    id: str
    code: str
    is_active: bool
    created_at: datetime
    link: str


class Referral(BaseModel):
    id: str
    referred_username: str = "Unknown"
    referred_email: str = "Unknown"
    status: ReferralStatus
    reward_amount: float = 0.0
    created_at: datetime
    completed_at: Optional[datetime] = None


class ReferralStats(BaseModel):
    total_referrals: int = 0
    completed_referrals: int = 0
    pending_referrals: int = 0
    total_rewards: float = 0.0
    pending_rewards: float = 0.0
    conversion_rate: int = 0


class ReferralOverview(BaseModel):
    stats: ReferralStats
    codes: List[ReferralCode] = Field(default_factory=list)
    referrals: List[Referral] = Field(default_factory=list)
