from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from auth.dependencies import get_client_storage_root, get_supabase, get_token_verifier
from auth.middleware import create_access_token, decode_access_token
from fakes import TEST_JWT_SECRET, FakeSupabase

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

AUTH_USER = {"id": "auth-1", "email": "buyer@example.com", "user_metadata": {}}

SUBSCRIPTIONS = [
    {"id": "sub-trial", "name": "Free Trial", "duration_days": 2, "price": 0.0, "subscription_key": "trial"},
    {"id": "sub-monthly", "name": "1 Month Subscription", "duration_days": 30, "price": 249.99, "subscription_key": "monthly"},
    {"id": "sub-6m", "name": "6 Months Subscription", "duration_days": 180, "price": 1349.99, "subscription_key": "6-months"},
    {"id": "sub-yearly", "name": "12 Months Subscription", "duration_days": 365, "price": 2399.99, "subscription_key": "yearly"},
]


def make_profile(**overrides):
    profile = {
        "id": "user-1",
        "auth_id": AUTH_USER["id"],
        "email": AUTH_USER["email"],
        "username": "buyer",
        "status": "active",
        "preferred_currency": "EUR",
        "current_subscription_id": None,
        "subscription_start_date": None,
        "subscription_end_date": None,
        "created_at": (NOW - timedelta(days=90)).isoformat(),
    }
    profile.update(overrides)
    return profile


@pytest.fixture
def supabase():
    db = FakeSupabase()
    db.seed("subscriptions", *SUBSCRIPTIONS)
    return db


@pytest.fixture
def client(supabase, tmp_path):
    from index import app

    app.dependency_overrides[get_supabase] = lambda: supabase
    app.dependency_overrides[get_token_verifier] = lambda: (
        lambda token: decode_access_token(token, secret=TEST_JWT_SECRET)
    )
    app.dependency_overrides[get_client_storage_root] = lambda: str(tmp_path / "clients")
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def access_token():
    return create_access_token(AUTH_USER["id"], AUTH_USER["email"], secret=TEST_JWT_SECRET)


@pytest.fixture
def headers(access_token):
    return {"Authorization": f"Bearer {access_token}", "X-Client-Id": "browser-1"}
