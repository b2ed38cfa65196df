"""
Withdrawal bot routes for RollWithdraw
"""
from fastapi import APIRouter, HTTPException, status, Depends
from pydantic import BaseModel
import logging

from supabase import Client

from auth.dependencies import get_client_storage, get_current_user, get_supabase
from models.bot import BotConfiguration, BotStatusResponse
from services.bot_service import BOT_RUNNING, BOT_STOPPED, BotService, add_to_blacklist, remove_from_blacklist
from services.checkout_service import has_active_subscription
from services.client_storage import ClientStorage
from services.dashboard_service import DashboardService
from services.dates import utc_now
from services.errors import StorefrontError

router = APIRouter(prefix="/bot", tags=["Bot"])
logger = logging.getLogger(__name__)

BOT_DRAFT_KEY = "bot_config"


class BlacklistItem(BaseModel):
    item: str


def _load_draft(storage: ClientStorage) -> BotConfiguration:
    saved = storage.get_item(BOT_DRAFT_KEY)
    return BotConfiguration(**saved) if saved else BotConfiguration()


async def _active_subscription(supabase: Client, current_user: dict) -> dict:
    profile = await DashboardService(supabase).get_profile(current_user["id"])
    if not profile.get("current_subscription_id") or not has_active_subscription(profile, utc_now()):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="An active subscription is required to run the bot"
        )
    return profile


@router.get("/config", response_model=BotConfiguration)
async def get_draft_configuration(storage: ClientStorage = Depends(get_client_storage)):
    return _load_draft(storage)


@router.post("/blacklist", response_model=BotConfiguration)
async def add_blacklist_item(request: BlacklistItem, storage: ClientStorage = Depends(get_client_storage)):
    draft = _load_draft(storage)
    draft.blacklist = add_to_blacklist(draft.blacklist, request.item)
    storage.set_item(BOT_DRAFT_KEY, draft.model_dump())
    return draft


@router.delete("/blacklist/{item}", response_model=BotConfiguration)
async def remove_blacklist_item(item: str, storage: ClientStorage = Depends(get_client_storage)):
    draft = _load_draft(storage)
    draft.blacklist = remove_from_blacklist(draft.blacklist, item)
    storage.set_item(BOT_DRAFT_KEY, draft.model_dump())
    return draft


@router.post("/start", response_model=BotStatusResponse)
async def start_bot(
    config: BotConfiguration,
    current_user: dict = Depends(get_current_user),
    storage: ClientStorage = Depends(get_client_storage),
    supabase: Client = Depends(get_supabase)
):
    """
    Start the withdrawal bot for the current subscription
    """
    try:
        profile = await _active_subscription(supabase, current_user)
        subscription_id = profile["current_subscription_id"]
        await BotService(supabase).start_bot(profile["id"], subscription_id, config)
    except StorefrontError as e:
        raise e.to_http_exception()

    storage.set_item(BOT_DRAFT_KEY, config.model_dump())
    return BotStatusResponse(message="Bot started successfully!", subscription_id=subscription_id, status=BOT_RUNNING)


@router.post("/stop", response_model=BotStatusResponse)
async def stop_bot(
    current_user: dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    try:
        profile = await DashboardService(supabase).get_profile(current_user["id"])
        subscription_id = profile.get("current_subscription_id")
        if not subscription_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No subscription found"
            )
        await BotService(supabase).stop_bot(profile["id"], subscription_id)
    except StorefrontError as e:
        raise e.to_http_exception()

    return BotStatusResponse(message="Bot stopped successfully!", subscription_id=subscription_id, status=BOT_STOPPED)
