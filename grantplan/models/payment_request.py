# /grantplan/models/payment_request.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, ForeignKey, DateTime, Text

from grantplan.core.database import Base


class PaymentRequest(Base):
    """Bank transfer (무통장 입금) request, approved or rejected by an admin."""
    __tablename__ = "payment_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)

    depositor_name: Mapped[str] = mapped_column(String(100))
    product_id: Mapped[str] = mapped_column(String(64))

    # Amount the user has to deposit, after discount
    amount: Mapped[int] = mapped_column(Integer)
    original_amount: Mapped[int] = mapped_column(Integer)
    discount_amount: Mapped[int] = mapped_column(Integer, default=0)

    coupon_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("coupons.id"), nullable=True)
    coupon_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    credits_to_add: Mapped[int] = mapped_column(Integer, default=1)

    # Status: pending, approved, rejected
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)

    admin_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    processed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
