"""
Referral program routes for RollWithdraw
"""
from fastapi import APIRouter, Depends
import logging

from supabase import Client

from auth.dependencies import get_current_user, get_supabase
from models.referral import ReferralOverview
from services.dashboard_service import DashboardService
from services.errors import StorefrontError
from services.referral_service import ReferralService, referral_link

router = APIRouter(prefix="/referrals", tags=["Referrals"])
logger = logging.getLogger(__name__)


@router.get("", response_model=ReferralOverview)
async def get_referrals(
    current_user: dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """
    Codes, referred users and reward statistics of the current user
    """
    try:
        profile = await DashboardService(supabase).get_profile(current_user["id"])
        return await ReferralService(supabase).get_overview(profile["id"])
    except StorefrontError as e:
        raise e.to_http_exception()


@router.post("/codes")
async def generate_referral_code(
    current_user: dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """
    Generate a new referral code; older codes stop working
    """
    try:
        profile = await DashboardService(supabase).get_profile(current_user["id"])
        code = await ReferralService(supabase).generate_code(profile["id"])
    except StorefrontError as e:
        raise e.to_http_exception()
    return {"code": code, "link": referral_link(code), "message": "New referral code generated successfully!"}
