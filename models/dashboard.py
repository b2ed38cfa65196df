"""
Dashboard models for RollWithdraw
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum

from models.order import OrderItem
from models.subscription import SubscriptionStatus, SubscriptionType
from models.user import UserProfile


class DashboardSection(str, Enum):
    OVERVIEW = "overview"
    PURCHASES = "purchases"
    BOT = "bot"
    REFERRALS = "referrals"
    SETTINGS = "settings"


class BillingRecord(BaseModel):
    id: str
    invoice_number: int
    amount: float
    date: datetime
    status: str
    subscription_name: str
    items: List[OrderItem] = Field(default_factory=list)


class UpcomingBilling(BaseModel):
    subscription_name: str
    date: datetime
    amount: float


class CurrentSubscription(BaseModel):
    id: str
    name: str
    duration_days: int
    price: float
    start_date: Optional[datetime] = None
    expiration_date: datetime


class DashboardSummary(BaseModel):
    section: DashboardSection = DashboardSection.OVERVIEW
    profile: UserProfile
    status: SubscriptionStatus
    subscription_type: Optional[SubscriptionType] = None
    subscription: Optional[CurrentSubscription] = None
    expired_message: Optional[str] = None
    billing_history: List[BillingRecord] = Field(default_factory=list)
    upcoming_billing: Optional[UpcomingBilling] = None
    purchase_success_message: Optional[str] = None
