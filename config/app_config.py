# config/app_config.py

import os
from typing import Dict, List

from dotenv import load_dotenv

load_dotenv()

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
CLIENT_STORAGE_DIR = os.getenv("CLIENT_STORAGE_DIR", ".client_storage")
TAX_RATE = float(os.getenv("TAX_RATE", "0.10"))
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "EUR")
REFERRAL_BASE_URL = os.getenv("REFERRAL_BASE_URL", f"{FRONTEND_URL}/signin")
AVATAR_BUCKET = os.getenv("AVATAR_BUCKET", "avatars")

SIGNIN_PATH = "/signin"
DASHBOARD_PATH = "/dashboard"

# Keys in a client's local storage
CART_STORAGE_KEY = "cart"
PURCHASE_COMPLETED_FLAG = "purchase_completed"
SHOW_PURCHASE_SUCCESS_FLAG = "show_purchase_success"

CURRENCY_OPTIONS: Dict[str, Dict[str, str]] = {
    "EUR": {"name": "Euro (€)", "symbol": "€"},
    "USD": {"name": "US Dollar ($)", "symbol": "$"},
    "GBP": {"name": "British Pound (£)", "symbol": "£"},
    "RUB": {"name": "Russian Ruble (₽)", "symbol": "₽"},
    "BTC": {"name": "Bitcoin (₿)", "symbol": "₿"},
}

PAYMENT_METHODS: Dict[str, Dict[str, str]] = {
    "bitcoin": {"name": "Bitcoin", "type": "crypto"},
    "ethereum": {"name": "Ethereum", "type": "crypto"},
    "tether": {"name": "Tether", "type": "crypto"},
}

DEFAULT_BOT_BLACKLIST: List[str] = [
    "Capsule", "Sticker", "Pass", "Key",
    "Case", "Graffiti", "Tag", "Music Kit", "Souvenir",
]

AVATAR_MAX_BYTES = 5 * 1024 * 1024
AVATAR_MAX_DIMENSION = 800
AVATAR_QUALITY = 70
AVATAR_CONTENT_TYPES: Dict[str, str] = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/gif": "GIF",
}


def is_supported_currency(code: str) -> bool:
    return code in CURRENCY_OPTIONS


def get_payment_method(method_id: str) -> Dict[str, str]:
    """Safely get a payment method; unknown ids return an empty dict."""
    return PAYMENT_METHODS.get(method_id, {})
