"""
User service for RollWithdraw profile operations
"""
from typing import Optional, Dict, Any
import io
import logging
import time

from PIL import Image, UnidentifiedImageError
from supabase import Client

from auth.utils import validate_username, validate_password
from config.app_config import (
    AVATAR_BUCKET,
    AVATAR_CONTENT_TYPES,
    AVATAR_MAX_BYTES,
    AVATAR_MAX_DIMENSION,
    AVATAR_QUALITY,
    DEFAULT_CURRENCY,
    is_supported_currency,
)
from config.decorators import retry_on_ssl_error
from models.user import AccountStatus
from services.dates import utc_now
from services.errors import AvatarError, ProfileError

logger = logging.getLogger(__name__)


def default_username(auth_user: Dict[str, Any]) -> str:
    metadata = auth_user.get("user_metadata") or {}
    if metadata.get("username"):
        return metadata["username"]
    return (auth_user.get("email") or "").split("@")[0]


def compress_avatar(image_bytes: bytes, content_type: str) -> bytes:
    """Downscale an avatar to fit the maximum dimension and re-encode it."""
    image_format = AVATAR_CONTENT_TYPES[content_type]
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.thumbnail((AVATAR_MAX_DIMENSION, AVATAR_MAX_DIMENSION))
            if image_format == "JPEG" and img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            output = io.BytesIO()
            if image_format == "JPEG":
                img.save(output, format="JPEG", quality=AVATAR_QUALITY, optimize=True)
            else:
                img.save(output, format=image_format, optimize=True)
            return output.getvalue()
    except (UnidentifiedImageError, OSError) as e:
        logger.error(f"Error compressing avatar: {str(e)}")
        raise AvatarError("Failed to process avatar upload")


@retry_on_ssl_error
def upload_avatar_and_get_url(storage_client, file_path: str, image_bytes: bytes, content_type: str) -> str:
    storage_client.upload(
        file=image_bytes,
        path=file_path,
        file_options={"content-type": content_type, "cache-control": "3600", "upsert": "true"}
    )
    return storage_client.get_public_url(file_path)


class UserService:
    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    async def get_profile(self, auth_id: str) -> Optional[Dict[str, Any]]:
        """
        Get the profile row for an authenticated identity
        """
        try:
            response = self.supabase.table("users").select("*").eq("auth_id", auth_id).limit(1).execute()
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error getting user profile {auth_id}: {str(e)}")
            return None

    async def create_profile(self, auth_user: Dict[str, Any], username: Optional[str] = None,
                             referred_by: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Create a new user profile
        """
        try:
            now = utc_now().isoformat()
            profile_data = {
                "auth_id": auth_user["id"],
                "email": auth_user.get("email") or "",
                "username": username or default_username(auth_user),
                "status": AccountStatus.ACTIVE.value,
                "preferred_currency": DEFAULT_CURRENCY,
                "created_at": now,
                "last_login": now,
            }
            if referred_by:
                profile_data["referred_by"] = referred_by

            response = self.supabase.table("users").insert(profile_data).execute()

            if response.data:
                logger.info(f"Created user profile: {profile_data['email']}")
                return response.data[0]
            return None

        except Exception as e:
            logger.error(f"Error creating user profile: {str(e)}")
            return None

    async def ensure_profile(self, auth_user: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fetch the profile, creating it on first use
        """
        profile = await self.get_profile(auth_user["id"])
        if profile:
            return profile
        profile = await self.create_profile(auth_user)
        if not profile:
            raise ProfileError("Failed to create user profile. Please contact support.")
        return profile

    async def is_username_taken(self, username: str) -> bool:
        response = self.supabase.table("users").select("username").eq("username", username).limit(1).execute()
        return bool(response.data)

    async def update_profile(self, auth_id: str, username: Optional[str] = None,
                             preferred_currency: Optional[str] = None,
                             avatar_url: Optional[str] = None) -> Dict[str, Any]:
        """
        Update the editable profile fields
        """
        update_data: Dict[str, Any] = {}
        if username is not None:
            if not validate_username(username):
                raise ProfileError("Username must be 3-16 characters, alphanumeric or underscores", 400)
            update_data["username"] = username
        if preferred_currency is not None:
            if not is_supported_currency(preferred_currency):
                raise ProfileError(f"Unsupported currency: {preferred_currency}", 400)
            update_data["preferred_currency"] = preferred_currency
        if avatar_url is not None:
            update_data["avatar_url"] = avatar_url

        if not update_data:
            raise ProfileError("No fields to update", 400)

        try:
            response = self.supabase.table("users").update(update_data).eq("auth_id", auth_id).execute()
        except Exception as e:
            logger.error(f"Error updating user profile {auth_id}: {str(e)}")
            raise ProfileError("Profile update failed")

        if not response.data:
            raise ProfileError("User profile not found", 404)

        logger.info(f"Updated user profile: {auth_id}")
        return response.data[0]

    async def upload_avatar(self, auth_id: str, filename: str, content_type: str, image_bytes: bytes) -> str:
        """
        Validate, compress and store an avatar, then point the profile at it
        """
        if content_type not in AVATAR_CONTENT_TYPES:
            raise AvatarError("Invalid file type. Please upload JPEG, PNG, or GIF.")
        if len(image_bytes) > AVATAR_MAX_BYTES:
            raise AvatarError("File is too large. Maximum size is 5MB.")

        compressed = compress_avatar(image_bytes, content_type)
        extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else AVATAR_CONTENT_TYPES[content_type].lower()
        file_path = f"avatars/{auth_id}_{int(time.time() * 1000)}.{extension}"

        try:
            public_url = upload_avatar_and_get_url(
                self.supabase.storage.from_(AVATAR_BUCKET), file_path, compressed, content_type
            )
        except Exception as e:
            logger.error(f"Avatar upload error for {auth_id}: {str(e)}")
            raise AvatarError(f"Avatar upload failed: {str(e)}", 502)

        await self.update_profile(auth_id, avatar_url=public_url)
        return public_url

    async def change_password(self, auth_id: str, new_password: str, confirm_password: str) -> None:
        if new_password != confirm_password:
            raise ProfileError("New passwords do not match", 400)
        is_valid, message = validate_password(new_password)
        if not is_valid:
            raise ProfileError(message, 400)
        try:
            self.supabase.auth.admin.update_user_by_id(auth_id, {"password": new_password})
        except Exception as e:
            logger.error(f"Password change error for {auth_id}: {str(e)}")
            raise ProfileError("Failed to update password")
        logger.info(f"Password updated for user {auth_id}")
