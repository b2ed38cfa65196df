"""
Withdrawal bot configuration models for RollWithdraw
"""
from pydantic import BaseModel, Field
from typing import Optional, List

from config.app_config import DEFAULT_BOT_BLACKLIST


class BotConfiguration(BaseModel):
    min_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    max_percentage: Optional[float] = None
    session_token: str = ""
    blacklist: List[str] = Field(default_factory=lambda: list(DEFAULT_BOT_BLACKLIST))


class BotStatusResponse(BaseModel):
    message: str
    subscription_id: str
    status: str
