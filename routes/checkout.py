"""
Checkout routes for RollWithdraw
"""
from fastapi import APIRouter, HTTPException, status, Depends, Header
from typing import Optional, Union
import logging

from supabase import Client

from auth.dependencies import get_client_storage, get_supabase, require_session
from models.order import CheckoutSummary, OrderResult, PlaceOrderRequest, Redirect
from services.cart_service import CartStore
from services.checkout_service import CheckoutService
from services.client_storage import ClientStorage
from services.errors import StorefrontError

router = APIRouter(prefix="/checkout", tags=["Checkout"])
logger = logging.getLogger(__name__)


@router.get("", response_model=Union[CheckoutSummary, Redirect])
async def get_checkout(
    current_user: dict = Depends(require_session),
    storage: ClientStorage = Depends(get_client_storage),
    supabase: Client = Depends(get_supabase)
):
    """
    Checkout page data, or a redirect to the purchases section when the cart is empty
    """
    return await CheckoutService(supabase).get_checkout_summary(current_user, CartStore(storage))


@router.post("/orders", response_model=OrderResult)
async def place_order(
    request: PlaceOrderRequest,
    current_user: dict = Depends(require_session),
    storage: ClientStorage = Depends(get_client_storage),
    supabase: Client = Depends(get_supabase),
    x_idempotency_key: Optional[str] = Header(default=None)
):
    """
    Place an order for the subscription in the cart
    """
    try:
        return await CheckoutService(supabase).place_order(
            current_user,
            CartStore(storage),
            storage,
            request,
            idempotency_key=x_idempotency_key
        )
    except StorefrontError as e:
        logger.warning(f"Checkout failed for user {current_user['id']}: {e.message}")
        raise e.to_http_exception()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Checkout error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process order. Please try again."
        )
