# /grantplan/models/payment.py
from datetime import datetime
from typing import Optional, Any
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, ForeignKey, DateTime, JSON

from grantplan.core.database import Base


class Payment(Base):
    """Card payments confirmed through the payment gateway."""
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    order_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)

    product_id: Mapped[str] = mapped_column(String(64))
    product_name: Mapped[str] = mapped_column(String(120))

    # Net amount charged (after coupon discount), KRW
    amount: Mapped[int] = mapped_column(Integer)
    original_amount: Mapped[int] = mapped_column(Integer)
    discount_amount: Mapped[int] = mapped_column(Integer, default=0)

    # Credits granted on completion
    credits_added: Mapped[int] = mapped_column(Integer)

    # Status: pending, completed, failed, cancelled
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)

    # card, 간편결제, 계좌이체 ... as reported by the gateway
    payment_method: Mapped[str] = mapped_column(String(40), default="card")

    # Gateway transaction reference (toss paymentKey / stripe payment intent id)
    payment_key: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    coupon_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("coupons.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Raw gateway response of the last confirm attempt
    raw: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
