from grantplan.models.user import User
from grantplan.models.coupon import Coupon, CouponUsage
from grantplan.models.payment import Payment
from grantplan.models.payment_request import PaymentRequest
from grantplan.models.credit_history import CreditHistory

__all__ = [
    "User", "Coupon", "CouponUsage", "Payment",
    "PaymentRequest", "CreditHistory",
]
