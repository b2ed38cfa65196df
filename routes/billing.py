"""
Plan catalog and billing routes for RollWithdraw
"""
from fastapi import APIRouter, HTTPException, status, Depends
from typing import List
import logging

from supabase import Client

from auth.dependencies import get_current_user, get_supabase
from config.plan_catalog import list_plans
from models.dashboard import BillingRecord
from models.subscription import Plan
from services.dashboard_service import DashboardService
from services.errors import StorefrontError

router = APIRouter(tags=["Billing"])
logger = logging.getLogger(__name__)


@router.get("/plans", response_model=List[Plan])
async def get_available_plans():
    """
    Get all purchasable plans, cheapest first
    """
    return [
        Plan(
            id=plan["id"],
            name=plan["name"],
            price=plan["price"],
            duration_days=plan["duration_days"],
            features=plan["features"]
        )
        for plan in list_plans()
    ]


@router.get("/billing/history", response_model=List[BillingRecord])
async def get_billing_history(
    current_user: dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """
    Get the user's orders, newest first
    """
    try:
        dashboard_service = DashboardService(supabase)
        profile = await dashboard_service.get_profile(current_user["id"])
        return await dashboard_service.get_billing_history(profile["id"])

    except StorefrontError as e:
        raise e.to_http_exception()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Billing history error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get billing history"
        )
