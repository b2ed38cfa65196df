"""
Authentication utilities for RollWithdraw
"""
import re

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
USERNAME_PATTERN = re.compile(r'^[a-zA-Z0-9_]{3,16}$')
PASSWORD_PATTERN = re.compile(r'^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)[a-zA-Z\d]{8,}$')


def validate_email(email: str) -> bool:
    """
    Basic email validation
    """
    return EMAIL_PATTERN.match(email or "") is not None


def validate_username(username: str) -> bool:
    """
    3-16 characters, alphanumeric and underscores
    """
    return USERNAME_PATTERN.match(username or "") is not None


def validate_password(password: str) -> tuple[bool, str]:
    """
    Validate password strength
    """
    if PASSWORD_PATTERN.match(password or "") is None:
        return False, "Password must be at least 8 characters with uppercase, lowercase, and number"
    return True, "Password is valid"
