import time
import functools
from httpx import ReadError
import logging

logger = logging.getLogger(__name__)


def retry_on_ssl_error(func):
    """
    A decorator to retry a Supabase call if it fails with the intermittent
    SSL DECRYPTION_FAILED_OR_BAD_RECORD_MAC error or a dropped read.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        max_retries = 3
        for attempt in range(max_retries):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                transient = isinstance(e, ReadError) or "DECRYPTION_FAILED_OR_BAD_RECORD_MAC" in str(e)
                if transient and attempt < max_retries - 1:
                    logger.warning(f"Transient error on {func.__name__}. Retrying in 0.5 seconds... (Attempt {attempt + 1}/{max_retries})")
                    time.sleep(0.5)
                else:
                    logger.error(f"Failed on last attempt or due to a different error: {e}")
                    raise
    return wrapper
