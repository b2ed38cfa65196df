"""
Checkout service for RollWithdraw

Turns the cart of an authenticated user into a completed order: validates
the cart, resolves the remote subscription row for the selected plan,
computes the subscription window and writes the order and the profile
update one after the other.

The two writes are independent; if the profile update fails after the
order was inserted, the order stays and the error asks the user to
contact support.
"""
from typing import Optional, Dict, Any, List, Tuple, Union
from datetime import datetime, timedelta
import logging

from supabase import Client

from config.app_config import (
    DASHBOARD_PATH,
    PAYMENT_METHODS,
    PURCHASE_COMPLETED_FLAG,
    SHOW_PURCHASE_SUCCESS_FLAG,
    TAX_RATE,
    get_payment_method,
)
from config.plan_catalog import FREE_TRIAL_DAYS, FREE_TRIAL_ID, get_plan, map_cart_item_name
from models.cart import CartItem
from models.order import CheckoutSummary, OrderItem, OrderResult, OrderStatus, PlaceOrderRequest, Redirect
from models.subscription import SubscriptionWindow
from services.cart_service import CartStore, catalog_line
from services.client_storage import ClientStorage
from services.dates import parse_timestamp, utc_now
from services.errors import (
    ActiveSubscriptionError,
    CheckoutStepError,
    CheckoutValidationError,
    MultipleSubscriptionsError,
    SubscriptionNotFoundError,
)
from services.user_service import UserService

logger = logging.getLogger(__name__)

ORDER_SUCCESS_MESSAGE = "Order completed successfully!"
LAST_CHECKOUT_KEY = "last_checkout"

# Characters that change the meaning of a PostgREST filter expression
RESERVED_FILTER_CHARS = frozenset(',()*%:"\\')


def calculate_totals(subtotal: float) -> Tuple[float, float, float]:
    """Return (subtotal, tax, total) rounded to cents."""
    tax = subtotal * TAX_RATE
    return round(subtotal, 2), round(tax, 2), round(subtotal + tax, 2)


def validate_cart(cart: CartStore) -> None:
    """Local checks that run before any remote call."""
    if cart.is_empty:
        raise CheckoutValidationError("Your cart is empty.")
    if len(cart.subscription_items()) > 1:
        raise MultipleSubscriptionsError()
    for item in cart.items[1:]:
        if get_plan(item.id) is None:
            raise CheckoutValidationError(f"{item.name} is not available for purchase.")


def trusted_subtotal(items: List[CartItem], fallback_price: Optional[float] = None) -> float:
    """
    Sum the cart at server-side prices.

    Catalog plans are priced from the catalog; any other line is priced at
    fallback_price (the resolved subscription row at checkout). Prices sent
    by the client are only used for display when no fallback is given.
    """
    subtotal = 0.0
    for item in items:
        plan = get_plan(item.id)
        if plan:
            price = plan["price"]
        elif fallback_price is not None:
            price = fallback_price
        else:
            price = item.price
        subtotal += price * item.quantity
    return subtotal


def validate_order_request(request: PlaceOrderRequest) -> None:
    if not request.policy_acknowledged:
        raise CheckoutValidationError("Please accept the terms and policies before placing your order.")
    if not get_payment_method(request.payment_method):
        raise CheckoutValidationError(f"Unsupported payment method: {request.payment_method}")


def has_active_subscription(profile: Optional[Dict[str, Any]], now: datetime) -> bool:
    if not profile:
        return False
    end_date = parse_timestamp(profile.get("subscription_end_date"))
    return end_date is not None and end_date > now


def compute_subscription_window(
    selected: Dict[str, Any],
    profile: Dict[str, Any],
    current_subscription: Optional[Dict[str, Any]],
    item_id: str,
    total: float,
    now: datetime,
) -> SubscriptionWindow:
    """
    Decide which subscription the profile ends up on and for how long.

    - no subscription yet: a new window from now (two days for the free trial);
    - a strictly longer plan than the current one: a new window from now, with
      the unused days of the current plan valued as a credit;
    - otherwise the current subscription and its dates are kept.
    """
    if not profile.get("current_subscription_id"):
        days = FREE_TRIAL_DAYS if item_id == FREE_TRIAL_ID else selected["duration_days"]
        return SubscriptionWindow(
            subscription_id=selected["id"],
            start_date=now,
            end_date=now + timedelta(days=days),
        )

    if current_subscription and selected["duration_days"] > current_subscription["duration_days"]:
        current_end = parse_timestamp(profile.get("subscription_end_date")) or now
        remaining_days = max(0.0, (current_end - now).total_seconds() / 86400)
        prorated_credit = (selected["price"] / selected["duration_days"]) * remaining_days
        return SubscriptionWindow(
            subscription_id=selected["id"],
            start_date=now,
            end_date=now + timedelta(days=selected["duration_days"]),
            extended=True,
            remaining_days=remaining_days,
            prorated_credit=prorated_credit,
            adjusted_total=total - prorated_credit,
        )

    return SubscriptionWindow(
        subscription_id=profile["current_subscription_id"],
        start_date=parse_timestamp(profile.get("subscription_start_date")) or now,
        end_date=parse_timestamp(profile.get("subscription_end_date")) or now,
    )


class CheckoutService:
    def __init__(self, supabase_client: Client, user_service: Optional[UserService] = None):
        self.supabase = supabase_client
        self.user_service = user_service or UserService(supabase_client)

    async def get_checkout_summary(self, current_user: Dict[str, Any], cart: CartStore) -> Union[CheckoutSummary, Redirect]:
        """
        Prices shown on the checkout page; an empty cart sends the user to their purchases
        """
        if cart.is_empty:
            return Redirect(redirect=DASHBOARD_PATH, state={"section": "purchases"})

        items = [catalog_line(item) for item in cart.items]
        subtotal, tax, total = calculate_totals(trusted_subtotal(items))
        return CheckoutSummary(
            email=current_user.get("email") or "",
            items=items,
            subtotal=subtotal,
            tax=tax,
            total=total,
            payment_methods=list(PAYMENT_METHODS),
        )

    async def find_subscription(self, cart_item_id: str, cart_item_name: str) -> Dict[str, Any]:
        """
        Resolve the remote subscription row for a cart item.

        Rows carrying the plan's subscription_key win; otherwise the mapped
        display name is matched case-insensitively.
        """
        plan = get_plan(cart_item_id)
        if plan:
            try:
                response = self.supabase.table("subscriptions").select(
                    "id, name, duration_days, price"
                ).eq("subscription_key", plan["subscription_key"]).limit(1).execute()
                if response.data:
                    return response.data[0]
            except Exception as e:
                logger.warning(f"Subscription key lookup failed for {cart_item_id}, matching by name: {str(e)}")

        mapped_name, _ = map_cart_item_name(cart_item_name)
        if not mapped_name.strip() or RESERVED_FILTER_CHARS.intersection(mapped_name):
            logger.warning(f"Refusing subscription lookup for cart item name {cart_item_name!r}")
            raise SubscriptionNotFoundError()

        try:
            # ilike on "%name%" also covers the exact match
            response = self.supabase.table("subscriptions").select(
                "id, name, duration_days, price"
            ).ilike("name", f"%{mapped_name}%").execute()
        except Exception as e:
            logger.error(f"Subscription lookup error: {str(e)}")
            raise CheckoutStepError("subscription_lookup", "Could not find a matching subscription")

        if not response.data:
            logger.error(f"No matching subscription found for {cart_item_name!r} (mapped to {mapped_name!r})")
            raise SubscriptionNotFoundError()
        for row in response.data:
            if row.get("name") == mapped_name:
                return row
        return response.data[0]

    async def get_subscription(self, subscription_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.supabase.table("subscriptions").select(
                "id, name, duration_days, price"
            ).eq("id", subscription_id).limit(1).execute()
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error getting subscription {subscription_id}: {str(e)}")
            return None

    async def place_order(
        self,
        current_user: Dict[str, Any],
        cart: CartStore,
        storage: ClientStorage,
        request: PlaceOrderRequest,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> OrderResult:
        """
        Run the checkout flow for the current cart
        """
        if idempotency_key:
            previous = storage.get_item(LAST_CHECKOUT_KEY)
            if (isinstance(previous, dict) and previous.get("key") == idempotency_key
                    and previous.get("user_id") == current_user["id"]):
                logger.info(f"Replaying checkout {idempotency_key} for user {current_user['id']}")
                return OrderResult(**previous["result"])

        now = now or utc_now()

        validate_order_request(request)
        validate_cart(cart)

        profile = await self.user_service.get_profile(current_user["id"])
        if has_active_subscription(profile, now):
            logger.warning(f"Checkout blocked for user {current_user['id']}: subscription still active")
            end_date = parse_timestamp(profile["subscription_end_date"])
            raise ActiveSubscriptionError(end_date.date().isoformat())

        if not profile:
            profile = await self.user_service.create_profile(current_user)
            if not profile:
                raise CheckoutStepError("profile", "Failed to create user profile")

        cart_item = cart.items[0]
        selected = await self.find_subscription(cart_item.id, cart_item.name)

        _, _, total = calculate_totals(trusted_subtotal(cart.items, fallback_price=selected["price"]))

        current_subscription = None
        if profile.get("current_subscription_id"):
            current_subscription = await self.get_subscription(profile["current_subscription_id"])

        window = compute_subscription_window(selected, profile, current_subscription, cart_item.id, total, now)
        if window.extended:
            logger.info(
                f"Extending subscription for user {current_user['id']}: "
                f"{window.remaining_days:.2f} days left, prorated credit {window.prorated_credit:.2f}, "
                f"adjusted total {window.adjusted_total:.2f} (charged {total:.2f})"
            )

        order_id = await self._insert_order(profile["id"], selected, window, total, request.payment_method, now)
        await self._update_profile_subscription(profile["id"], window)

        cart.clear_cart()
        storage.set_item(PURCHASE_COMPLETED_FLAG, True)
        storage.set_item(SHOW_PURCHASE_SUCCESS_FLAG, True)

        result = OrderResult(
            redirect=DASHBOARD_PATH,
            state={"section": "purchases", "message": ORDER_SUCCESS_MESSAGE},
            order_id=str(order_id),
            subscription_id=window.subscription_id,
            subscription_start_date=window.start_date,
            subscription_end_date=window.end_date,
            total_amount=total,
            prorated_credit=window.prorated_credit,
            adjusted_total=window.adjusted_total,
        )
        if idempotency_key:
            storage.set_item(LAST_CHECKOUT_KEY, {
                "key": idempotency_key,
                "user_id": current_user["id"],
                "result": result.model_dump(mode="json"),
            })

        logger.info(f"Order {order_id} placed for user {current_user['id']} on subscription {window.subscription_id}")
        return result

    async def _insert_order(self, user_id: str, selected: Dict[str, Any], window: SubscriptionWindow,
                            total: float, payment_method: str, now: datetime) -> str:
        line_items: List[Dict[str, Any]] = [
            OrderItem(id=selected["id"], name=selected["name"], price=selected["price"], quantity=1).model_dump()
        ]
        order_record = {
            "user_id": user_id,
            "subscription_id": window.subscription_id,
            "total_amount": total,
            "items": line_items,
            "payment_method": payment_method,
            "status": OrderStatus.COMPLETED.value,
            "transaction_date": now.isoformat(),
        }
        try:
            response = self.supabase.table("orders").insert(order_record).execute()
        except Exception as e:
            logger.error(f"Order creation error: {str(e)}")
            raise CheckoutStepError("order", "Failed to process order. Please try again.")

        if not response.data:
            raise CheckoutStepError("order", "Failed to create order. Please try again.")
        return response.data[0]["id"]

    async def _update_profile_subscription(self, user_id: str, window: SubscriptionWindow) -> None:
        try:
            self.supabase.table("users").update({
                "current_subscription_id": window.subscription_id,
                "subscription_start_date": window.start_date.isoformat(),
                "subscription_end_date": window.end_date.isoformat(),
            }).eq("id", user_id).execute()
        except Exception as e:
            logger.error(f"Subscription update error for user {user_id}: {str(e)}")
            raise CheckoutStepError("profile_update", "Failed to update subscription. Please contact support.")
