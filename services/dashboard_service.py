"""
Dashboard service for RollWithdraw
"""
from typing import Optional, Dict, Any, List
from datetime import datetime, timedelta
import logging

from supabase import Client

from config.app_config import PURCHASE_COMPLETED_FLAG, SHOW_PURCHASE_SUCCESS_FLAG
from models.dashboard import BillingRecord, CurrentSubscription, DashboardSummary, UpcomingBilling
from models.order import OrderItem, OrderStatus
from models.subscription import SubscriptionStatus, SubscriptionType
from models.user import UserProfile
from services.client_storage import ClientStorage
from services.dates import parse_timestamp, utc_now
from services.errors import ProfileError

logger = logging.getLogger(__name__)

PURCHASE_SUCCESS_MESSAGE = "Purchase completed successfully! Your subscription is now active."

EXPIRED_MESSAGES = {
    SubscriptionType.TRIAL: "Your free trial has ended. Purchase a licence to keep using RollWithdraw.",
    SubscriptionType.MONTHLY: "Your monthly subscription has ended. Renew to continue using RollWithdraw.",
    SubscriptionType.SIX_MONTHS: "Your 6-month subscription has ended. Renew to continue using RollWithdraw.",
    SubscriptionType.YEARLY: "Your yearly subscription has ended. Renew to continue using RollWithdraw.",
}
DEFAULT_EXPIRED_MESSAGE = "Your subscription has expired. Renew to continue using RollWithdraw."
INVOICE_NUMBER_BASE = 1000


def detect_subscription_type(subscription_name: str) -> Optional[SubscriptionType]:
    """Coarse plan type from the subscription name, only used to pick a message."""
    name = (subscription_name or "").lower()
    if "trial" in name:
        return SubscriptionType.TRIAL
    if "6 month" in name or "6-month" in name:
        return SubscriptionType.SIX_MONTHS
    if "12 month" in name or "year" in name or "annual" in name:
        return SubscriptionType.YEARLY
    if "month" in name:
        return SubscriptionType.MONTHLY
    return None


def consume_purchase_flags(storage: ClientStorage) -> bool:
    """Read and clear the one-time flags left behind by a successful checkout."""
    purchased = bool(storage.get_item(PURCHASE_COMPLETED_FLAG)) or bool(storage.get_item(SHOW_PURCHASE_SUCCESS_FLAG))
    storage.remove_item(PURCHASE_COMPLETED_FLAG)
    storage.remove_item(SHOW_PURCHASE_SUCCESS_FLAG)
    return purchased


class DashboardService:
    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    async def get_profile(self, auth_id: str) -> Dict[str, Any]:
        try:
            response = self.supabase.table("users").select("*").eq("auth_id", auth_id).limit(1).execute()
        except Exception as e:
            logger.error(f"User fetch error for {auth_id}: {str(e)}")
            raise ProfileError("Failed to load user data")
        if not response.data:
            raise ProfileError("Failed to load user data", 404)
        return response.data[0]

    async def get_latest_completed_order(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.supabase.table("orders").select(
                "id, user_id, subscription_id, total_amount, transaction_date, status, items"
            ).eq("user_id", user_id).eq("status", OrderStatus.COMPLETED.value).order(
                "transaction_date", desc=True
            ).limit(1).execute()
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Orders fetch error for user {user_id}: {str(e)}")
            return None

    async def get_subscription(self, subscription_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.supabase.table("subscriptions").select("*").eq("id", subscription_id).limit(1).execute()
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Subscription fetch error for {subscription_id}: {str(e)}")
            return None

    async def get_billing_history(self, user_id: str) -> List[BillingRecord]:
        """
        All orders of the user, newest first, named after their subscription
        """
        try:
            response = self.supabase.table("orders").select(
                "id, total_amount, transaction_date, status, items, subscription_id"
            ).eq("user_id", user_id).order("transaction_date", desc=True).execute()
        except Exception as e:
            logger.error(f"Billing history fetch error for user {user_id}: {str(e)}")
            return []

        orders = response.data or []
        subscription_ids = sorted({order["subscription_id"] for order in orders if order.get("subscription_id")})
        names: Dict[str, str] = {}
        if subscription_ids:
            try:
                subs_response = self.supabase.table("subscriptions").select("id, name").in_("id", subscription_ids).execute()
                names = {sub["id"]: sub["name"] for sub in subs_response.data or []}
            except Exception as e:
                logger.error(f"Subscriptions fetch error: {str(e)}")

        history = []
        for index, order in enumerate(orders):
            history.append(BillingRecord(
                id=str(order["id"]),
                invoice_number=INVOICE_NUMBER_BASE + index + 1,
                amount=order.get("total_amount") or 0.0,
                date=parse_timestamp(order["transaction_date"]),
                status=order.get("status") or "",
                subscription_name=names.get(order.get("subscription_id"), "Unknown Subscription"),
                items=[OrderItem(**item) for item in order.get("items") or []],
            ))
        return history

    async def get_dashboard(self, current_user: Dict[str, Any], storage: ClientStorage,
                            section: str = "overview", now: Optional[datetime] = None) -> DashboardSummary:
        """
        Everything the dashboard shows, fetched fresh on every call
        """
        now = now or utc_now()
        profile = await self.get_profile(current_user["id"])

        status = SubscriptionStatus.INACTIVE
        subscription_type = None
        current = None
        expired_message = None

        latest_order = await self.get_latest_completed_order(profile["id"])
        subscription = None
        if latest_order and latest_order.get("subscription_id"):
            subscription = await self.get_subscription(latest_order["subscription_id"])

        if latest_order and subscription:
            expiration_date = parse_timestamp(profile.get("subscription_end_date"))
            if expiration_date is None:
                expiration_date = parse_timestamp(latest_order["transaction_date"]) + timedelta(
                    days=subscription.get("duration_days") or 30
                )
            status = SubscriptionStatus.ACTIVE if expiration_date > now else SubscriptionStatus.EXPIRED
            subscription_type = detect_subscription_type(subscription.get("name", ""))
            current = CurrentSubscription(
                id=str(subscription["id"]),
                name=subscription.get("name", ""),
                duration_days=subscription.get("duration_days") or 30,
                price=subscription.get("price") or 0.0,
                start_date=parse_timestamp(profile.get("subscription_start_date")),
                expiration_date=expiration_date,
            )
            if status == SubscriptionStatus.EXPIRED:
                expired_message = EXPIRED_MESSAGES.get(subscription_type, DEFAULT_EXPIRED_MESSAGE)

        billing_history = await self.get_billing_history(profile["id"])
        upcoming = None
        if billing_history:
            last = billing_history[0]
            duration = current.duration_days if current else 30
            upcoming = UpcomingBilling(
                subscription_name=last.subscription_name,
                date=last.date + timedelta(days=duration),
                amount=last.amount,
            )
        elif current:
            upcoming = UpcomingBilling(subscription_name=current.name, date=current.expiration_date, amount=current.price)

        purchase_message = PURCHASE_SUCCESS_MESSAGE if consume_purchase_flags(storage) else None

        return DashboardSummary(
            section=section,
            profile=UserProfile(**profile),
            status=status,
            subscription_type=subscription_type,
            subscription=current,
            expired_message=expired_message,
            billing_history=billing_history,
            upcoming_billing=upcoming,
            purchase_success_message=purchase_message,
        )
