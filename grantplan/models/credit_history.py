# /grantplan/models/credit_history.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, ForeignKey, DateTime

from grantplan.core.database import Base


class CreditHistory(Base):
    """Credit ledger - one immutable row per balance mutation."""
    __tablename__ = "credit_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)

    # Type: purchase, use
    type: Mapped[str] = mapped_column(String(20))

    # Signed amount (positive for purchase, negative for use)
    amount: Mapped[int] = mapped_column(Integer)

    description: Mapped[str] = mapped_column(String(255))

    # References (payment, bank transfer request, generated business plan)
    payment_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("payments.id"), nullable=True, index=True)
    payment_request_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("payment_requests.id"), nullable=True, index=True
    )
    business_plan_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
