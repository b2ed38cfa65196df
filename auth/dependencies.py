"""
Authentication dependencies for RollWithdraw
"""
from fastapi import Depends, Header, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from supabase import Client

from config.app_config import CLIENT_STORAGE_DIR
from services.client_storage import ClientStorage, FileClientStorage
from services.errors import StorefrontError
from .middleware import get_auth_middleware, decode_access_token
from .session_gate import SessionGate

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def get_supabase() -> Client:
    """
    Shared Supabase client; overridden in tests
    """
    return get_auth_middleware().supabase


def get_token_verifier():
    return decode_access_token


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    verify=Depends(get_token_verifier),
) -> dict:
    """
    Get current authenticated user
    """
    return verify(credentials.credentials)


async def require_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    verify=Depends(get_token_verifier),
) -> dict:
    """
    Gate for protected views; unauthenticated visitors are sent to sign in
    """
    gate = SessionGate(request.url.path, verify)
    return gate.check(credentials)


def get_client_storage_root() -> str:
    return CLIENT_STORAGE_DIR


def get_client_storage(
    x_client_id: str = Header(..., description="Identifier of the browser the cart belongs to"),
    root: str = Depends(get_client_storage_root),
) -> ClientStorage:
    """
    Local storage of the calling client
    """
    try:
        return FileClientStorage(root, x_client_id)
    except ValueError as e:
        raise StorefrontError(str(e), 400)
