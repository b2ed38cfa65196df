"""
Plan Catalog Configuration for RollWithdraw

This module contains the purchasable licence plans and the lookup table that
maps a cart item's display name onto the name of the matching row in the
remote `subscriptions` table.
"""

from typing import Dict, List, Optional, Tuple, TypedDict


class CatalogPlan(TypedDict):
    """Type definition for a catalog plan."""
    id: str
    name: str
    price: float
    duration_days: int
    subscription_key: str
    features: List[str]


FREE_TRIAL_ID = "free-trial"
FREE_TRIAL_DAYS = 2
DEFAULT_DURATION_DAYS = 30  # unmapped cart items are treated as one month

# Plans a cart may hold at most one of
SUBSCRIPTION_TIER_IDS = frozenset({"monthly", "6-months", "yearly", FREE_TRIAL_ID})

PLAN_CATALOG: Dict[str, CatalogPlan] = {
    FREE_TRIAL_ID: {
        "id": FREE_TRIAL_ID,
        "name": "Free Trial",
        "price": 0.0,
        "duration_days": FREE_TRIAL_DAYS,
        "subscription_key": "trial",
        "features": [
            "Automated Withdrawals",
            "Custom Price Ranges",
        ],
    },
    "monthly": {
        "id": "monthly",
        "name": "1 Month Licence",
        "price": 249.99,
        "duration_days": 30,
        "subscription_key": "monthly",
        "features": [
            "No Withdrawals Limit",
            "Automated Withdrawals",
            "Custom Price Ranges",
            "Advanced Filtering",
        ],
    },
    "6-months": {
        "id": "6-months",
        "name": "6 Months Licence",
        "price": 1349.99,
        "duration_days": 180,
        "subscription_key": "6-months",
        "features": [
            "No Withdrawals Limit",
            "Daily Case Collection",
            "No Cost",
            "Simple Interface",
        ],
    },
    "yearly": {
        "id": "yearly",
        "name": "12 Months Licence",
        "price": 2399.99,
        "duration_days": 365,
        "subscription_key": "yearly",
        "features": [
            "No Withdrawals Limit",
            "Roulette Strategy",
            "Multiple Bet Types",
            "Risk Management",
        ],
    },
}

# Cart display name -> (remote subscription name, nominal duration in days)
SUBSCRIPTION_NAME_MAP: Dict[str, Tuple[str, int]] = {
    "Free Trial": ("Free Trial", FREE_TRIAL_DAYS),
    "1 Month Licence": ("1 Month Subscription", 30),
    "6 Months Licence": ("6 Months Subscription", 180),
    "12 Months Licence": ("12 Months Subscription", 365),
}


def get_plan(plan_id: str) -> Optional[CatalogPlan]:
    """Get a catalog plan by id, or None if it does not exist."""
    return PLAN_CATALOG.get(plan_id)


def list_plans() -> List[CatalogPlan]:
    """Return all plans, cheapest first."""
    return sorted(PLAN_CATALOG.values(), key=lambda plan: plan["price"])


def is_subscription_tier(item_id: str) -> bool:
    return item_id in SUBSCRIPTION_TIER_IDS


def map_cart_item_name(cart_item_name: str) -> Tuple[str, int]:
    """
    Map a cart item's display name onto the remote subscription name.

    Names missing from the table are passed through with a one-month duration.
    """
    return SUBSCRIPTION_NAME_MAP.get(cart_item_name, (cart_item_name, DEFAULT_DURATION_DAYS))
