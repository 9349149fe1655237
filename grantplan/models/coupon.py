# /grantplan/models/coupon.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, Boolean, ForeignKey, CheckConstraint

from grantplan.core.database import Base


class Coupon(Base):
    """Fixed-amount discount coupon."""
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint("max_uses IS NULL OR used_count <= max_uses", name="ck_coupons_usage_cap"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    # Stored upper-case, lookups are case-insensitive
    code: Mapped[str] = mapped_column(String(64), unique=True, index=True)

    # Discount in KRW
    discount_amount: Mapped[int] = mapped_column(Integer)

    expires_at: Mapped[datetime] = mapped_column(DateTime)

    # NULL = unlimited
    max_uses: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    used_count: Mapped[int] = mapped_column(Integer, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CouponUsage(Base):
    """One row per coupon redemption."""
    __tablename__ = "coupon_usages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    coupon_id: Mapped[str] = mapped_column(String(36), ForeignKey("coupons.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)

    # Context: payment, bank_transfer
    context: Mapped[str] = mapped_column(String(30))

    payment_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    payment_request_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    used_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
