"""
Subscription models for RollWithdraw
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from enum import Enum


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    INACTIVE = "inactive"


class SubscriptionType(str, Enum):
    TRIAL = "trial"
    MONTHLY = "monthly"
    SIX_MONTHS = "6-months"
    YEARLY = "yearly"


class Subscription(BaseModel):
    """A row of the remote `subscriptions` table."""
    id: str
    name: str
    duration_days: int
    price: float


class SubscriptionWindow(BaseModel):
    """Outcome of the window computation at checkout."""
    subscription_id: str
    start_date: datetime
    end_date: datetime
    extended: bool = False
    remaining_days: Optional[float] = None
    prorated_credit: Optional[float] = None
    adjusted_total: Optional[float] = None


class Plan(BaseModel):
    id: str
    name: str
    price: float
    duration_days: int
    features: List[str]
