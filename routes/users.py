"""
Account settings routes for RollWithdraw
"""
from fastapi import APIRouter, HTTPException, status, Depends, File, UploadFile
import logging

from supabase import Client

from auth.dependencies import get_current_user, get_supabase
from config.app_config import CURRENCY_OPTIONS
from models.user import PasswordChange, ProfileUpdate, UserProfile
from services.errors import StorefrontError
from services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])
logger = logging.getLogger(__name__)


@router.get("/me", response_model=UserProfile)
async def get_current_user_profile(
    current_user: dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """
    Get current user profile
    """
    try:
        user_profile = await UserService(supabase).get_profile(current_user["id"])
        if not user_profile:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User profile not found"
            )
        return UserProfile(**user_profile)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get current user error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load user profile"
        )


@router.put("/me", response_model=UserProfile)
async def update_current_user_profile(
    update_data: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """
    Update username and preferred currency
    """
    try:
        profile = await UserService(supabase).update_profile(
            current_user["id"],
            username=update_data.username,
            preferred_currency=update_data.preferred_currency
        )
        return UserProfile(**profile)
    except StorefrontError as e:
        raise e.to_http_exception()


@router.post("/me/avatar")
async def upload_avatar(
    file: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """
    Upload a new avatar (JPEG, PNG or GIF up to 5MB)
    """
    image_bytes = await file.read()
    try:
        avatar_url = await UserService(supabase).upload_avatar(
            current_user["id"],
            file.filename or "avatar",
            file.content_type or "",
            image_bytes
        )
    except StorefrontError as e:
        raise e.to_http_exception()
    return {"avatar_url": avatar_url, "message": "Profile updated successfully"}


@router.put("/me/password")
async def change_password(
    request: PasswordChange,
    current_user: dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """
    Change the account password
    """
    try:
        await UserService(supabase).change_password(current_user["id"], request.new_password, request.confirm_password)
    except StorefrontError as e:
        raise e.to_http_exception()
    return {"message": "Password updated successfully"}


@router.get("/currencies")
async def get_currency_options():
    return {"currencies": [{"code": code, **option} for code, option in CURRENCY_OPTIONS.items()]}
