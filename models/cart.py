"""
Cart models for RollWithdraw
"""
from pydantic import BaseModel, Field
from typing import List


class CartItem(BaseModel):
    id: str
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(default=1, ge=1)


class QuantityUpdate(BaseModel):
    # Zero or negative removes the line
    quantity: int


class CartResponse(BaseModel):
    items: List[CartItem]
    total_price: float
    item_count: int
