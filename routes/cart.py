"""
Cart routes for RollWithdraw
"""
from fastapi import APIRouter, HTTPException, status, Depends
import logging

from auth.dependencies import get_client_storage
from config.plan_catalog import get_plan
from models.cart import CartItem, CartResponse, QuantityUpdate
from services.cart_service import CartStore, catalog_line
from services.client_storage import ClientStorage

router = APIRouter(prefix="/cart", tags=["Cart"])
logger = logging.getLogger(__name__)


def get_cart(storage: ClientStorage = Depends(get_client_storage)) -> CartStore:
    return CartStore(storage)


def _cart_response(cart: CartStore) -> CartResponse:
    items = cart.items
    return CartResponse(
        items=items,
        total_price=round(cart.get_total_price(), 2),
        item_count=sum(item.quantity for item in items)
    )


@router.get("", response_model=CartResponse)
async def get_cart_contents(cart: CartStore = Depends(get_cart)):
    return _cart_response(cart)


@router.post("/items", response_model=CartResponse)
async def add_item(item: CartItem, cart: CartStore = Depends(get_cart)):
    """
    Add an item; an item already in the cart has its quantity increased
    """
    cart.add_to_cart(catalog_line(item))
    return _cart_response(cart)


@router.post("/plans/{plan_id}", response_model=CartResponse)
async def add_plan(plan_id: str, cart: CartStore = Depends(get_cart)):
    """
    Add a catalog plan once, like the "Add to cart" button of the pricing page
    """
    plan = get_plan(plan_id)
    if not plan:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown plan: {plan_id}"
        )
    if not cart.add_plan(plan):
        logger.info(f"Plan {plan_id} already in cart")
    return _cart_response(cart)


@router.patch("/items/{item_id}", response_model=CartResponse)
async def update_item_quantity(item_id: str, update: QuantityUpdate, cart: CartStore = Depends(get_cart)):
    cart.update_quantity(item_id, update.quantity)
    return _cart_response(cart)


@router.delete("/items/{item_id}", response_model=CartResponse)
async def remove_item(item_id: str, cart: CartStore = Depends(get_cart)):
    cart.remove_from_cart(item_id)
    return _cart_response(cart)


@router.delete("", response_model=CartResponse)
async def clear_cart(cart: CartStore = Depends(get_cart)):
    cart.clear_cart()
    return _cart_response(cart)
