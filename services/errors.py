"""
Domain errors for the RollWithdraw storefront.

Every error carries the message shown to the user and the HTTP status the
routes answer with.
"""
from typing import Optional

from fastapi import HTTPException, status


class StorefrontError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.message)


class CheckoutValidationError(StorefrontError):
    """Rejected before any remote write; the user can fix it by editing the cart."""
    status_code = status.HTTP_400_BAD_REQUEST


class MultipleSubscriptionsError(CheckoutValidationError):
    def __init__(self):
        super().__init__(
            "You can only purchase one subscription at a time. "
            "Please remove the extra subscriptions from your cart."
        )


class ActiveSubscriptionError(CheckoutValidationError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, end_date: str = ""):
        message = "You already have an active subscription."
        if end_date:
            message += f" You can purchase a new one after it expires on {end_date}."
        super().__init__(message)


class SubscriptionNotFoundError(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self):
        super().__init__("No suitable subscription found. Please contact support.")


class CheckoutStepError(StorefrontError):
    """A remote call inside the checkout flow failed; earlier writes stay in place."""
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, step: str, message: str):
        self.step = step
        super().__init__(message)


class ProfileError(StorefrontError):
    pass


class ReferralError(StorefrontError):
    pass


class BotConfigurationError(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST


class AvatarError(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
