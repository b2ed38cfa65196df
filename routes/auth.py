"""
Authentication routes for RollWithdraw
"""
from fastapi import APIRouter, HTTPException, status, Depends
from fastapi.security import HTTPAuthorizationCredentials
from typing import Optional
import logging
import asyncio
from asyncio import TimeoutError as AsyncTimeoutError

from supabase import Client

from auth.dependencies import get_current_user, get_supabase, get_token_verifier, optional_security
from auth.middleware import create_access_token
from auth.utils import validate_email, validate_password, validate_username
from config.app_config import DASHBOARD_PATH, FRONTEND_URL, SIGNIN_PATH
from models.order import Redirect
from models.user import AuthResponse, ForgotPasswordRequest, PasswordChange, SignInRequest, SignUpRequest, UserProfile
from services.errors import StorefrontError
from services.referral_service import ReferralService
from services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)

SIGNUP_TIMEOUT_SECONDS = 120


def _auth_user_dict(user) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "user_metadata": getattr(user, "user_metadata", None) or {},
    }


@router.post("/signup", response_model=Redirect)
async def sign_up(request: SignUpRequest, supabase: Client = Depends(get_supabase)):
    """
    Register a new account and its profile
    """
    if not validate_username(request.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username must be 3-16 characters, alphanumeric or underscores"
        )

    is_valid, message = validate_password(request.password)
    if not is_valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)

    if request.password != request.confirm_password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Passwords do not match")

    user_service = UserService(supabase)
    try:
        if await user_service.is_username_taken(request.username):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username is already taken")

        referred_by = None
        if request.referral_code:
            if await ReferralService(supabase).is_active_code(request.referral_code):
                referred_by = request.referral_code
            else:
                logger.warning(f"Ignoring unknown referral code on signup: {request.referral_code}")

        try:
            auth_response = await asyncio.wait_for(
                asyncio.to_thread(
                    supabase.auth.sign_up,
                    {
                        "email": request.email,
                        "password": request.password,
                        "options": {
                            "data": {"username": request.username},
                            "email_redirect_to": f"{FRONTEND_URL}{SIGNIN_PATH}"
                        }
                    }
                ),
                timeout=SIGNUP_TIMEOUT_SECONDS
            )
        except AsyncTimeoutError:
            logger.error(f"Registration timeout for email: {request.email}")
            raise HTTPException(
                status_code=status.HTTP_408_REQUEST_TIMEOUT,
                detail="Registration request timed out. Please try again."
            )

        if auth_response.user is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Failed to create account"
            )

        profile = await user_service.create_profile(
            _auth_user_dict(auth_response.user),
            username=request.username,
            referred_by=referred_by
        )
        if not profile:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create user profile"
            )

        logger.info(f"User registered: {request.email}")
        return Redirect(
            redirect=SIGNIN_PATH,
            state={"message": "Please open your email to confirm your account.", "mode": "signin"}
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Registration error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred. Please try again."
        )


@router.post("/signin", response_model=AuthResponse)
async def sign_in(request: SignInRequest, supabase: Client = Depends(get_supabase)):
    """
    Sign in, creating the profile on first sign-in, and send the user back where they came from
    """
    if not validate_email(request.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please enter a valid email address")

    try:
        auth_response = supabase.auth.sign_in_with_password({
            "email": request.email,
            "password": request.password
        })
    except Exception as e:
        logger.warning(f"Signin error for {request.email}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password. Please try again."
        )

    if auth_response.user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed. Please try again."
        )

    auth_user = _auth_user_dict(auth_response.user)
    try:
        profile = await UserService(supabase).ensure_profile(auth_user)
    except StorefrontError as e:
        raise e.to_http_exception()

    if auth_response.session is not None:
        access_token = auth_response.session.access_token
    else:
        access_token = create_access_token(auth_user["id"], auth_user["email"], user_metadata=auth_user["user_metadata"])

    logger.info(f"User signed in: {request.email}")
    return AuthResponse(
        access_token=access_token,
        redirect=request.redirect_from or DASHBOARD_PATH,
        user=UserProfile(**profile)
    )


@router.post("/forgot-password")
async def forgot_password(request: ForgotPasswordRequest, supabase: Client = Depends(get_supabase)):
    """
    Request password reset
    """
    try:
        supabase.auth.reset_password_email(
            request.email,
            {"redirect_to": f"{FRONTEND_URL}/reset-password"}
        )
        logger.info(f"Password reset requested for: {request.email}")
    except Exception as e:
        logger.error(f"Password reset error: {str(e)}")
    # Don't reveal if email exists or not
    return {"message": "Password reset link sent to your email"}


@router.post("/reset-password")
async def reset_password(
    request: PasswordChange,
    current_user: dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """
    Set a new password from the recovery session
    """
    try:
        await UserService(supabase).change_password(current_user["id"], request.new_password, request.confirm_password)
    except StorefrontError as e:
        raise e.to_http_exception()
    return {"message": "Password updated successfully"}


@router.get("/session")
async def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    verify=Depends(get_token_verifier)
):
    """
    Report whether the caller holds a valid session
    """
    if credentials is None:
        return {"authenticated": False, "user": None}
    try:
        user = verify(credentials.credentials)
    except HTTPException:
        return {"authenticated": False, "user": None}
    return {"authenticated": True, "user": {"id": user["id"], "email": user["email"]}}


@router.post("/signout")
async def sign_out(
    current_user: dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """
    Sign out the current session
    """
    try:
        supabase.auth.sign_out()
        logger.info(f"User signed out: {current_user['id']}")
    except Exception as e:
        # Signing out never fails for the caller
        logger.error(f"Logout error: {str(e)}")
    return {"message": "Logged out successfully", "redirect": "/"}
