import asyncio

import pytest

from models.referral import ReferralStatus
from services.errors import ReferralError
from services.referral_service import ReferralService, derive_referral_status, referral_link


def _seed_referrals(supabase):
    supabase.seed(
        "users",
        {"id": "user-2", "auth_id": "auth-2", "email": "friend@example.com", "username": "friend", "status": "active"},
        {"id": "user-3", "auth_id": "auth-3", "email": "other@example.com", "username": "other", "status": "pending"},
    )
    supabase.seed(
        "referrals",
        {"id": "r-1", "referrer_id": "user-1", "referred_id": "user-2", "status": "pending",
         "reward_amount": 10.0, "created_at": "2026-02-01T00:00:00+00:00"},
        {"id": "r-2", "referrer_id": "user-1", "referred_id": "user-3", "status": "pending",
         "reward_amount": 0.0, "created_at": "2026-02-10T00:00:00+00:00"},
        {"id": "r-3", "referrer_id": "someone-else", "referred_id": "user-9", "status": "completed",
         "reward_amount": 10.0, "created_at": "2026-02-11T00:00:00+00:00"},
    )
    supabase.seed(
        "referral_rewards",
        {"referral_id": "r-1", "amount": 10.0, "status": "paid"},
        {"referral_id": "r-2", "amount": 5.0, "status": "pending"},
        {"referral_id": "r-3", "amount": 99.0, "status": "paid"},
    )


def test_referral_link_points_at_signin():
    assert referral_link("RW0001").endswith("/signin?ref=RW0001")


def test_pending_referral_with_active_account_counts_as_signed_up():
    assert derive_referral_status("pending", {"status": "active"}) == ReferralStatus.SIGNED_UP
    assert derive_referral_status("pending", {"status": "pending"}) == ReferralStatus.PENDING
    assert derive_referral_status("completed", {}) == ReferralStatus.COMPLETED
    assert derive_referral_status("bogus", {}) == ReferralStatus.PENDING


def test_generating_a_code_deactivates_previous_ones(supabase):
    service = ReferralService(supabase)
    first = asyncio.run(service.generate_code("user-1"))
    second = asyncio.run(service.generate_code("user-1"))

    assert first != second
    active = [row["code"] for row in supabase.rows("referral_codes") if row["is_active"]]
    assert active == [second]
    assert asyncio.run(service.is_active_code(second))
    assert not asyncio.run(service.is_active_code(first))


def test_generate_code_failure(supabase):
    supabase.fail("rpc", "handle_referral_code_generation")
    with pytest.raises(ReferralError):
        asyncio.run(ReferralService(supabase).generate_code("user-1"))


def test_overview_stats(supabase):
    _seed_referrals(supabase)
    asyncio.run(ReferralService(supabase).generate_code("user-1"))

    overview = asyncio.run(ReferralService(supabase).get_overview("user-1"))

    assert [referral.id for referral in overview.referrals] == ["r-2", "r-1"]
    assert overview.referrals[1].status == ReferralStatus.SIGNED_UP
    assert overview.referrals[1].referred_username == "friend"
    assert overview.stats.total_referrals == 2
    assert overview.stats.completed_referrals == 1
    assert overview.stats.pending_referrals == 1
    assert overview.stats.total_rewards == 15.0
    assert overview.stats.pending_rewards == 5.0
    assert overview.stats.conversion_rate == 50
    assert len(overview.codes) == 1
    assert overview.codes[0].link.endswith(f"?ref={overview.codes[0].code}")


def test_overview_without_referrals(supabase):
    overview = asyncio.run(ReferralService(supabase).get_overview("user-1"))
    assert overview.stats.total_referrals == 0
    assert overview.stats.conversion_rate == 0
    assert overview.codes == []
