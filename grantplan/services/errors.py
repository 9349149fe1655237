# FILE: grantplan/services/errors.py
"""Domain errors raised by the ledger / payment services.

Routers do not catch these one by one: `server.py` registers a handler that
renders any `LedgerError` as `{"detail": ..., "code": ...}` with its status.
"""


class LedgerError(Exception):
    status_code = 400
    code = "ledger_error"
    default_message = "Request could not be processed"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NotFoundError(LedgerError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class InvalidProductError(LedgerError):
    code = "invalid_product"
    default_message = "Invalid product"


class InvalidCouponError(LedgerError):
    code = "invalid_coupon"
    default_message = "Invalid coupon"

    def __init__(self, message: str = "", reason: str = "invalid"):
        super().__init__(message)
        self.reason = reason


class CouponNotFoundError(InvalidCouponError):
    default_message = "Coupon does not exist"

    def __init__(self, message: str = ""):
        super().__init__(message, reason="not_found")


class CouponInactiveError(InvalidCouponError):
    default_message = "Coupon is inactive"

    def __init__(self, message: str = ""):
        super().__init__(message, reason="inactive")


class CouponExpiredError(InvalidCouponError):
    default_message = "Coupon has expired"

    def __init__(self, message: str = ""):
        super().__init__(message, reason="expired")


class CouponExhaustedError(InvalidCouponError):
    status_code = 409
    default_message = "Coupon usage limit reached"

    def __init__(self, message: str = ""):
        super().__init__(message, reason="exhausted_uses")


class InsufficientCreditsError(LedgerError):
    status_code = 402
    code = "insufficient_credits"
    default_message = "Not enough credits"


class AlreadyProcessedError(LedgerError):
    status_code = 409
    code = "already_processed"
    default_message = "Already processed"


class AmountMismatchError(LedgerError):
    code = "amount_mismatch"
    default_message = "Payment amount does not match"


class BelowMinimumError(LedgerError):
    code = "below_minimum"
    default_message = "Deposit amount is below the minimum"


class GatewayDeclinedError(LedgerError):
    status_code = 402
    code = "gateway_declined"
    default_message = "Payment was declined"


class GatewayUnavailableError(LedgerError):
    """Transport-level gateway failure; the payment stays pending."""
    status_code = 502
    code = "gateway_unavailable"
    default_message = "Payment gateway is unavailable, please retry"
