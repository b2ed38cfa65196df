"""
Referral service for RollWithdraw
"""
from typing import Dict, Any, List
import logging

from supabase import Client

from config.app_config import REFERRAL_BASE_URL
from models.referral import Referral, ReferralCode, ReferralOverview, ReferralStats, ReferralStatus
from models.user import AccountStatus
from services.dates import parse_timestamp
from services.errors import ReferralError

logger = logging.getLogger(__name__)


def referral_link(code: str) -> str:
    return f"{REFERRAL_BASE_URL}?ref={code}"


def derive_referral_status(stored_status: str, referred_user: Dict[str, Any]) -> ReferralStatus:
    """A pending referral counts as signed up once the referred account is active."""
    if stored_status == ReferralStatus.PENDING.value and referred_user.get("status") == AccountStatus.ACTIVE.value:
        return ReferralStatus.SIGNED_UP
    try:
        return ReferralStatus(stored_status)
    except ValueError:
        return ReferralStatus.PENDING


def compute_stats(referrals: List[Referral], rewards: List[Dict[str, Any]]) -> ReferralStats:
    total = len(referrals)
    completed = sum(1 for r in referrals if r.status in (ReferralStatus.COMPLETED, ReferralStatus.SIGNED_UP))
    pending = sum(1 for r in referrals if r.status == ReferralStatus.PENDING)
    return ReferralStats(
        total_referrals=total,
        completed_referrals=completed,
        pending_referrals=pending,
        total_rewards=sum(reward.get("amount") or 0 for reward in rewards),
        pending_rewards=sum(reward.get("amount") or 0 for reward in rewards if reward.get("status") == "pending"),
        conversion_rate=round(completed / total * 100) if total else 0,
    )


class ReferralService:
    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    async def generate_code(self, user_id: str) -> str:
        """
        Ask the database for a fresh code; it deactivates the user's older codes
        """
        try:
            response = self.supabase.rpc("handle_referral_code_generation", {"p_user_id": user_id}).execute()
        except Exception as e:
            logger.error(f"Error generating referral code for {user_id}: {str(e)}")
            raise ReferralError("Failed to generate referral code")

        code = response.data
        if isinstance(code, list):
            code = code[0] if code else None
        if isinstance(code, dict):
            code = code.get("code")
        if not code:
            raise ReferralError("Failed to generate referral code")

        logger.info(f"Generated referral code for user {user_id}")
        return code

    async def get_overview(self, user_id: str) -> ReferralOverview:
        try:
            codes_response = self.supabase.table("referral_codes").select("*").eq(
                "user_id", user_id
            ).order("created_at", desc=True).execute()

            referrals_response = self.supabase.table("referrals").select(
                "id, status, reward_amount, created_at, completed_at, referred_id"
            ).eq("referrer_id", user_id).order("created_at", desc=True).execute()

            referral_rows = referrals_response.data or []
            referred_ids = [row["referred_id"] for row in referral_rows if row.get("referred_id")]
            referred_users: Dict[str, Dict[str, Any]] = {}
            rewards: List[Dict[str, Any]] = []
            if referral_rows:
                if referred_ids:
                    users_response = self.supabase.table("users").select(
                        "id, username, email, status"
                    ).in_("id", referred_ids).execute()
                    referred_users = {row["id"]: row for row in users_response.data or []}
                rewards_response = self.supabase.table("referral_rewards").select(
                    "amount, status"
                ).in_("referral_id", [row["id"] for row in referral_rows]).execute()
                rewards = rewards_response.data or []
        except Exception as e:
            logger.error(f"Error fetching referral data for {user_id}: {str(e)}")
            raise ReferralError("Failed to load referral data")

        codes = [
            ReferralCode(
                id=str(row["id"]),
                code=row["code"],
                is_active=bool(row.get("is_active")),
                created_at=parse_timestamp(row["created_at"]),
                link=referral_link(row["code"]),
            )
            for row in codes_response.data or []
        ]

        referrals = []
        for row in referral_rows:
            referred = referred_users.get(row.get("referred_id"), {})
            referrals.append(Referral(
                id=str(row["id"]),
                referred_username=referred.get("username") or "Unknown",
                referred_email=referred.get("email") or "Unknown",
                status=derive_referral_status(row.get("status"), referred),
                reward_amount=row.get("reward_amount") or 0.0,
                created_at=parse_timestamp(row["created_at"]),
                completed_at=parse_timestamp(row.get("completed_at")),
            ))

        return ReferralOverview(stats=compute_stats(referrals, rewards), codes=codes, referrals=referrals)

    async def is_active_code(self, code: str) -> bool:
        """True if the code is an active referral code"""
        try:
            response = self.supabase.table("referral_codes").select("id").eq("code", code).eq("is_active", True).limit(1).execute()
            return bool(response.data)
        except Exception as e:
            logger.error(f"Error checking referral code {code}: {str(e)}")
            return False
