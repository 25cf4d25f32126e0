"""Cart error taxonomy."""

from typing import Optional


class CartError(Exception):
    """Base class for every failure the cart subsystem reports."""

    retryable = False
    user_message = "Something went wrong with your cart."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.user_message)
        self.message = message or self.user_message


class AuthRequired(CartError):
    """No valid session: missing token, or the server rejected it."""

    user_message = "Please sign in to use your cart."


class ValidationError(CartError):
    """Invalid input to a cart operation. Callers should never trigger this."""

    user_message = "Invalid cart operation."


class RemoteRejection(CartError):
    """The storefront API explicitly rejected the request."""

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportFailure(CartError):
    """Network error, timeout, or unreachable API."""

    retryable = True
    user_message = "Could not reach the store. Please try again."


class PricingError(CartError):
    """A line's price can't be resolved. The line is non-purchasable."""

    user_message = "Price unavailable for this item."


class StaleLineError(PricingError):
    """The product or variant a cart line references is gone or inactive."""

    user_message = "This item is no longer available."
