from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, CheckConstraint

from grantplan.core.database import Base

class User(Base):
    """Account. `credits` is only ever written by the ledger service."""
    __tablename__ = "users"
    __table_args__ = (CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String(190), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(120))

    # Identity provider that created the account: google, kakao, naver, dev
    provider: Mapped[str] = mapped_column(String(30), default="dev")
    profile_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # user | admin
    role: Mapped[str] = mapped_column(String(20), default="user")

    credits: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
