"""
Order and checkout models for RollWithdraw
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

from models.cart import CartItem


class OrderStatus(str, Enum):
    # Orders are only written once payment has been taken
    COMPLETED = "completed"


class OrderItem(BaseModel):
    id: str
    name: str
    price: float
    quantity: int = 1


class Order(BaseModel):
    id: str
    user_id: str
    subscription_id: str
    total_amount: float
    transaction_date: datetime
    status: OrderStatus = OrderStatus.COMPLETED
    payment_method: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)


class PlaceOrderRequest(BaseModel):
    payment_method: str = Field(default="bitcoin", description="bitcoin, ethereum or tether")
    policy_acknowledged: bool = Field(default=False, description="Terms, privacy and refund policies accepted")


class Redirect(BaseModel):
    redirect: str
    state: Dict[str, Any] = Field(default_factory=dict)


class CheckoutSummary(BaseModel):
    email: str
    items: List[CartItem]
    subtotal: float
    tax: float
    total: float
    payment_methods: List[str]


class OrderResult(Redirect):
    order_id: str
    subscription_id: str
    subscription_start_date: datetime
    subscription_end_date: datetime
    total_amount: float
    prorated_credit: Optional[float] = None
    adjusted_total: Optional[float] = None
