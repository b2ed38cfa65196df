"""
Session gate for the protected storefront views (checkout and dashboard)

A gate starts in CHECKING, looks at the session once and either resolves
with the signed-in user or sends the visitor to sign in, remembering the
page they asked for. There is no revalidation after that.
"""
from enum import Enum
from typing import Callable, Optional
import logging

from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from config.app_config import SIGNIN_PATH

logger = logging.getLogger(__name__)

SIGNIN_REQUIRED_MESSAGE = "Please sign in to access this page"
SESSION_EXPIRED_MESSAGE = "Your session has expired. Please sign in again."
PROTECTED_PATHS = ("/checkout", "/dashboard")


class GateState(str, Enum):
    CHECKING = "checking"
    RESOLVED = "resolved"


class SignInRequired(Exception):
    def __init__(self, from_path: str, message: str = SIGNIN_REQUIRED_MESSAGE):
        self.from_path = from_path
        self.message = message
        super().__init__(message)

    def to_response_body(self) -> dict:
        return {
            "redirect": SIGNIN_PATH,
            "state": {"from": self.from_path, "message": self.message},
        }


def is_protected_path(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PROTECTED_PATHS)


class SessionGate:
    def __init__(self, requested_path: str, verify: Callable[[str], dict]):
        self.requested_path = requested_path
        self.verify = verify
        self.state = GateState.CHECKING
        self.user: Optional[dict] = None

    def check(self, credentials: Optional[HTTPAuthorizationCredentials]) -> dict:
        if self.state == GateState.RESOLVED:
            return self.user

        if credentials is None or not credentials.credentials:
            raise SignInRequired(self.requested_path)

        try:
            self.user = self.verify(credentials.credentials)
        except HTTPException as e:
            logger.info(f"Rejected session for {self.requested_path}: {e.detail}")
            raise SignInRequired(self.requested_path, SESSION_EXPIRED_MESSAGE)

        self.state = GateState.RESOLVED
        return self.user
