"""
Dashboard routes for RollWithdraw
"""
from fastapi import APIRouter, Depends, Query
import logging

from supabase import Client

from auth.dependencies import get_client_storage, get_supabase, require_session
from models.dashboard import DashboardSection, DashboardSummary
from services.client_storage import ClientStorage
from services.dashboard_service import DashboardService
from services.errors import StorefrontError

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])
logger = logging.getLogger(__name__)


@router.get("", response_model=DashboardSummary)
async def get_dashboard(
    section: DashboardSection = Query(default=DashboardSection.OVERVIEW),
    current_user: dict = Depends(require_session),
    storage: ClientStorage = Depends(get_client_storage),
    supabase: Client = Depends(get_supabase)
):
    try:
        return await DashboardService(supabase).get_dashboard(current_user, storage, section=section.value)
    except StorefrontError as e:
        raise e.to_http_exception()
