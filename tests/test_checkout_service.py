import asyncio
import json
from datetime import timedelta

import pytest

from conftest import AUTH_USER, NOW, SUBSCRIPTIONS, make_profile
from config.plan_catalog import PLAN_CATALOG
from fakes import FakeSupabase
from models.cart import CartItem
from models.order import CheckoutSummary, PlaceOrderRequest, Redirect
from services.cart_service import CartStore
from services.checkout_service import CheckoutService, calculate_totals, compute_subscription_window
from services.client_storage import ClientStorage, FileClientStorage
from services.dates import parse_timestamp
from services.errors import (
    ActiveSubscriptionError,
    CheckoutStepError,
    CheckoutValidationError,
    MultipleSubscriptionsError,
    SubscriptionNotFoundError,
)

ORDER_REQUEST = PlaceOrderRequest(payment_method="bitcoin", policy_acknowledged=True)


def _cart_with(*plan_ids):
    storage = ClientStorage()
    cart = CartStore(storage)
    for plan_id in plan_ids:
        cart.add_plan(PLAN_CATALOG[plan_id])
    return cart, storage


def _place(supabase, cart, storage, request=ORDER_REQUEST, **kwargs):
    return asyncio.run(
        CheckoutService(supabase).place_order(AUTH_USER, cart, storage, request, now=NOW, **kwargs)
    )


def test_totals_include_ten_percent_tax():
    assert calculate_totals(249.99) == (249.99, 25.0, 274.99)
    assert calculate_totals(0.0) == (0.0, 0.0, 0.0)


def test_two_subscriptions_rejected_before_any_remote_call(supabase):
    supabase.seed("users", make_profile())
    cart, storage = _cart_with("monthly", "yearly")

    with pytest.raises(MultipleSubscriptionsError):
        _place(supabase, cart, storage)

    assert supabase.calls == []
    assert len(cart.items) == 2


def test_policy_must_be_acknowledged(supabase):
    cart, storage = _cart_with("monthly")
    with pytest.raises(CheckoutValidationError):
        _place(supabase, cart, storage, request=PlaceOrderRequest(payment_method="bitcoin"))
    with pytest.raises(CheckoutValidationError):
        _place(supabase, cart, storage, request=PlaceOrderRequest(payment_method="paypal", policy_acknowledged=True))
    assert supabase.calls == []


def test_empty_cart_is_rejected(supabase):
    cart, storage = _cart_with()
    with pytest.raises(CheckoutValidationError):
        _place(supabase, cart, storage)


def test_active_subscription_blocks_new_order(supabase):
    supabase.seed("users", make_profile(
        current_subscription_id="sub-monthly",
        subscription_start_date=(NOW - timedelta(days=20)).isoformat(),
        subscription_end_date=(NOW + timedelta(days=10)).isoformat(),
    ))
    cart, storage = _cart_with("yearly")

    with pytest.raises(ActiveSubscriptionError):
        _place(supabase, cart, storage)

    assert supabase.remote_writes() == []
    assert supabase.rows("orders") == []


def test_first_purchase_writes_order_and_profile(supabase):
    supabase.seed("users", make_profile())
    cart, storage = _cart_with("monthly")

    result = _place(supabase, cart, storage)

    assert result.redirect == "/dashboard"
    assert result.state == {"section": "purchases", "message": "Order completed successfully!"}
    assert result.subscription_id == "sub-monthly"
    assert result.subscription_end_date == NOW + timedelta(days=30)
    assert result.total_amount == 274.99

    [order] = supabase.rows("orders")
    assert order["status"] == "completed"
    assert order["user_id"] == "user-1"
    assert order["payment_method"] == "bitcoin"
    assert order["items"] == [{"id": "sub-monthly", "name": "1 Month Subscription", "price": 249.99, "quantity": 1}]

    [profile] = supabase.rows("users")
    assert profile["current_subscription_id"] == "sub-monthly"
    assert parse_timestamp(profile["subscription_end_date"]) == NOW + timedelta(days=30)

    assert cart.is_empty
    assert storage.get_item("cart") == []
    assert storage.get_item("purchase_completed") is True
    assert storage.get_item("show_purchase_success") is True


def test_free_trial_lasts_two_days(supabase):
    supabase.seed("users", make_profile())
    cart, storage = _cart_with("free-trial")

    result = _place(supabase, cart, storage)

    assert result.subscription_id == "sub-trial"
    assert result.subscription_start_date == NOW
    assert result.subscription_end_date == NOW + timedelta(days=2)
    assert result.total_amount == 0.0


def test_name_lookup_maps_licence_to_subscription():
    supabase = FakeSupabase()
    supabase.seed("subscriptions", *[
        {key: value for key, value in row.items() if key != "subscription_key"} for row in SUBSCRIPTIONS
    ])
    supabase.seed("users", make_profile())
    storage = ClientStorage()
    cart = CartStore(storage)
    cart.add_to_cart(CartItem(id="monthly", name="1 Month Licence", price=249.99))

    result = _place(supabase, cart, storage)

    assert result.subscription_id == "sub-monthly"


def test_unknown_item_falls_back_to_name_match(supabase):
    subscription = asyncio.run(CheckoutService(supabase).find_subscription("legacy", "6 Months Licence"))
    assert subscription["id"] == "sub-6m"


def test_no_matching_subscription():
    supabase = FakeSupabase()
    supabase.seed("users", make_profile())
    cart, storage = _cart_with("monthly")

    with pytest.raises(SubscriptionNotFoundError):
        _place(supabase, cart, storage)
    assert supabase.rows("orders") == []


def test_expired_shorter_plan_is_replaced_by_longer_one(supabase):
    supabase.seed("users", make_profile(
        current_subscription_id="sub-monthly",
        subscription_start_date=(NOW - timedelta(days=31)).isoformat(),
        subscription_end_date=(NOW - timedelta(days=1)).isoformat(),
    ))
    cart, storage = _cart_with("yearly")

    result = _place(supabase, cart, storage)

    assert result.subscription_id == "sub-yearly"
    assert result.subscription_end_date == NOW + timedelta(days=365)
    assert result.prorated_credit == 0.0
    assert result.adjusted_total == result.total_amount


def test_shorter_plan_keeps_existing_subscription(supabase):
    start = NOW - timedelta(days=400)
    end = NOW - timedelta(days=35)
    supabase.seed("users", make_profile(
        current_subscription_id="sub-yearly",
        subscription_start_date=start.isoformat(),
        subscription_end_date=end.isoformat(),
    ))
    cart, storage = _cart_with("monthly")

    result = _place(supabase, cart, storage)

    assert result.subscription_id == "sub-yearly"
    assert result.subscription_start_date == start
    assert result.subscription_end_date == end
    assert supabase.rows("orders")[0]["subscription_id"] == "sub-yearly"


def test_extension_credits_remaining_days():
    yearly = SUBSCRIPTIONS[3]
    profile = make_profile(
        current_subscription_id="sub-monthly",
        subscription_end_date=(NOW + timedelta(days=10)).isoformat(),
    )

    window = compute_subscription_window(yearly, profile, SUBSCRIPTIONS[1], "yearly", 2639.99, NOW)

    assert window.extended
    assert window.start_date == NOW
    assert window.end_date == NOW + timedelta(days=365)
    assert window.remaining_days == pytest.approx(10)
    assert window.prorated_credit == pytest.approx(2399.99 / 365 * 10)
    assert window.adjusted_total == pytest.approx(2639.99 - 2399.99 / 365 * 10)


def test_missing_profile_is_created_from_email(supabase):
    cart, storage = _cart_with("monthly")

    result = _place(supabase, cart, storage)

    [profile] = supabase.rows("users")
    assert profile["auth_id"] == "auth-1"
    assert profile["username"] == "buyer"
    assert profile["status"] == "active"
    assert supabase.rows("orders")[0]["user_id"] == profile["id"]
    assert result.subscription_id == "sub-monthly"


def test_profile_creation_failure_is_fatal(supabase):
    supabase.fail("users", "insert")
    cart, storage = _cart_with("monthly")

    with pytest.raises(CheckoutStepError) as excinfo:
        _place(supabase, cart, storage)

    assert excinfo.value.step == "profile"
    assert supabase.rows("orders") == []


def test_profile_update_failure_leaves_order_in_place(supabase):
    supabase.seed("users", make_profile())
    supabase.fail("users", "update")
    cart, storage = _cart_with("monthly")

    with pytest.raises(CheckoutStepError) as excinfo:
        _place(supabase, cart, storage)

    assert excinfo.value.step == "profile_update"
    assert len(supabase.rows("orders")) == 1
    assert not cart.is_empty
    assert storage.get_item("purchase_completed") is None


def test_repeated_submission_with_same_key_is_replayed(supabase):
    supabase.seed("users", make_profile())
    cart, storage = _cart_with("monthly")

    first = _place(supabase, cart, storage, idempotency_key="attempt-1")
    second = _place(supabase, CartStore(storage), storage, idempotency_key="attempt-1")

    assert second.order_id == first.order_id
    assert len(supabase.rows("orders")) == 1


def test_checkout_summary_redirects_when_cart_is_empty(supabase):
    cart, _ = _cart_with()
    summary = asyncio.run(CheckoutService(supabase).get_checkout_summary(AUTH_USER, cart))
    assert isinstance(summary, Redirect)
    assert summary.redirect == "/dashboard"
    assert summary.state == {"section": "purchases"}


def test_checkout_summary_prices(supabase):
    cart, _ = _cart_with("6-months")
    summary = asyncio.run(CheckoutService(supabase).get_checkout_summary(AUTH_USER, cart))
    assert isinstance(summary, CheckoutSummary)
    assert summary.email == "buyer@example.com"
    assert summary.subtotal == 1349.99
    assert summary.tax == 135.0
    assert summary.total == 1484.99
    assert summary.payment_methods == ["bitcoin", "ethereum", "tether"]


def test_tampered_catalog_price_is_not_charged(supabase):
    supabase.seed("users", make_profile())
    storage = ClientStorage()
    cart = CartStore(storage)
    cart.add_to_cart(CartItem(id="yearly", name="12 Months Licence", price=0.0))

    result = _place(supabase, cart, storage)

    assert result.total_amount == 2639.99
    assert supabase.rows("orders")[0]["total_amount"] == 2639.99


def test_non_catalog_item_is_charged_at_subscription_price(supabase):
    supabase.seed("users", make_profile())
    storage = ClientStorage()
    cart = CartStore(storage)
    cart.add_to_cart(CartItem(id="legacy", name="6 Months Licence", price=1.0))

    result = _place(supabase, cart, storage)

    assert result.subscription_id == "sub-6m"
    assert result.total_amount == 1484.99


def test_extra_non_catalog_line_is_rejected_before_any_remote_call(supabase):
    supabase.seed("users", make_profile())
    cart, storage = _cart_with("monthly")
    cart.add_to_cart(CartItem(id="addon", name="Extra", price=0.0))

    with pytest.raises(CheckoutValidationError):
        _place(supabase, cart, storage)
    assert supabase.calls == []


def test_checkout_summary_ignores_client_prices(supabase):
    storage = ClientStorage()
    cart = CartStore(storage)
    cart.add_to_cart(CartItem(id="yearly", name="Anything", price=0.0))

    summary = asyncio.run(CheckoutService(supabase).get_checkout_summary(AUTH_USER, cart))

    assert summary.items[0].name == PLAN_CATALOG["yearly"]["name"]
    assert summary.total == 2639.99


@pytest.mark.parametrize("name", [
    "zzz,name.ilike.%12 Months%",
    "x)or(id.neq.0",
    "50% Off",
    "   ",
])
def test_filter_syntax_in_item_name_is_refused(supabase, name):
    with pytest.raises(SubscriptionNotFoundError):
        asyncio.run(CheckoutService(supabase).find_subscription("legacy", name))
    assert ("subscriptions", "select") not in supabase.calls


def test_replay_requires_the_same_user(supabase):
    supabase.seed("users", make_profile())
    cart, storage = _cart_with("monthly")
    _place(supabase, cart, storage, idempotency_key="attempt-1")

    other_user = {**AUTH_USER, "id": "auth-2", "email": "other@example.com"}
    with pytest.raises(CheckoutValidationError):
        asyncio.run(CheckoutService(supabase).place_order(
            other_user, CartStore(storage), storage, ORDER_REQUEST, idempotency_key="attempt-1", now=NOW
        ))
    assert len(supabase.rows("orders")) == 1


def test_only_the_last_checkout_is_remembered(supabase, tmp_path):
    supabase.seed("users", make_profile())
    storage = FileClientStorage(str(tmp_path), "browser-1")
    cart = CartStore(storage)
    cart.add_plan(PLAN_CATALOG["free-trial"])
    _place(supabase, cart, storage, idempotency_key="attempt-1")

    supabase.tables["users"][0]["subscription_end_date"] = (NOW - timedelta(days=1)).isoformat()
    cart.add_plan(PLAN_CATALOG["monthly"])
    second = _place(supabase, cart, storage, idempotency_key="attempt-2")

    remembered = storage.get_item("last_checkout")
    assert remembered["key"] == "attempt-2"
    assert remembered["user_id"] == AUTH_USER["id"]
    assert remembered["result"]["order_id"] == second.order_id
    saved = json.loads((tmp_path / "browser-1.json").read_text())
    assert not any(key.startswith("checkout:") for key in saved)
