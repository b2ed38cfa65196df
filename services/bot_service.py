"""
Withdrawal bot configuration service for RollWithdraw
"""
from typing import Dict, Any, List
import logging

from supabase import Client

from models.bot import BotConfiguration
from services.errors import BotConfigurationError

logger = logging.getLogger(__name__)

BOT_RUNNING = "running"
BOT_STOPPED = "stopped"


def add_to_blacklist(blacklist: List[str], item: str) -> List[str]:
    item = (item or "").strip()
    if not item or item in blacklist:
        return list(blacklist)
    return [*blacklist, item]


def remove_from_blacklist(blacklist: List[str], item: str) -> List[str]:
    return [entry for entry in blacklist if entry != item]


def validate_configuration(config: BotConfiguration) -> None:
    if not config.session_token.strip():
        raise BotConfigurationError("Session token is required")
    if config.min_price is not None and config.max_price is not None and config.min_price > config.max_price:
        raise BotConfigurationError("Minimum price cannot be greater than maximum price")
    if config.max_percentage is not None and not 0 <= config.max_percentage <= 100:
        raise BotConfigurationError("Maximum percentage must be between 0 and 100")


class BotService:
    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    async def start_bot(self, user_id: str, subscription_id: str, config: BotConfiguration) -> Dict[str, Any]:
        validate_configuration(config)
        record = {
            "min_price": config.min_price,
            "max_price": config.max_price,
            "max_percentage": config.max_percentage,
            "session_token": config.session_token,
            "blacklist": config.blacklist,
            "user_id": user_id,
            "subscription_id": subscription_id,
            "status": BOT_RUNNING,
        }
        try:
            response = self.supabase.table("bot_configurations").insert(record).execute()
        except Exception as e:
            logger.error(f"Bot start error for user {user_id}: {str(e)}")
            raise BotConfigurationError("Failed to start bot", 502)

        logger.info(f"Bot started for user {user_id} on subscription {subscription_id}")
        return response.data[0] if response.data else record

    async def stop_bot(self, user_id: str, subscription_id: str) -> None:
        # Plans are shared between users, so the owner scopes the update
        try:
            self.supabase.table("bot_configurations").update(
                {"status": BOT_STOPPED}
            ).eq("user_id", user_id).eq("subscription_id", subscription_id).execute()
        except Exception as e:
            logger.error(f"Bot stop error for user {user_id}: {str(e)}")
            raise BotConfigurationError("Failed to stop bot", 502)
        logger.info(f"Bot stopped for user {user_id} on subscription {subscription_id}")
