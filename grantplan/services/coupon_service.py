# FILE: grantplan/services/coupon_service.py
"""Coupon validation and admin management.

Validation never mutates a coupon. Redemption (used_count + CouponUsage row)
lives on `LedgerTransaction.redeem_coupon` so it always commits together with
the payment it belongs to.
"""

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from grantplan.models.coupon import Coupon, CouponUsage
from grantplan.models.payment import Payment
from grantplan.models.payment_request import PaymentRequest
from grantplan.services.errors import (
    AlreadyProcessedError,
    CouponExhaustedError,
    CouponExpiredError,
    CouponInactiveError,
    CouponNotFoundError,
    LedgerError,
    NotFoundError,
)

logger = logging.getLogger("grantplan.coupons")

# 0/O and 1/I are left out so codes can be read back over the phone
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6
MAX_BULK_COUNT = 100
MAX_CODE_ATTEMPTS = 10

_REASON_ERRORS = {
    "not_found": CouponNotFoundError,
    "inactive": CouponInactiveError,
    "expired": CouponExpiredError,
    "exhausted_uses": CouponExhaustedError,
}


@dataclass
class CouponValidation:
    valid: bool
    coupon: Optional[Coupon] = None
    reason: Optional[str] = None
    message: Optional[str] = None

    def raise_if_invalid(self) -> Coupon:
        if self.valid and self.coupon is not None:
            return self.coupon
        raise _REASON_ERRORS[self.reason or "not_found"](self.message or "")


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def to_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def check_coupon(coupon: Optional[Coupon], now: Optional[datetime] = None) -> CouponValidation:
    """Apply the validation rules, in order, to an already loaded coupon."""
    now = now or datetime.utcnow()
    if coupon is None:
        return CouponValidation(False, reason="not_found", message="Coupon does not exist")
    if not coupon.is_active:
        return CouponValidation(False, reason="inactive", message="Coupon is inactive")
    if coupon.expires_at <= now:
        return CouponValidation(False, reason="expired", message="Coupon has expired")
    if coupon.max_uses is not None and coupon.used_count >= coupon.max_uses:
        return CouponValidation(False, reason="exhausted_uses", message="Coupon usage limit reached")
    return CouponValidation(True, coupon=coupon)


async def get_coupon_by_code(db: AsyncSession, code: str) -> Optional[Coupon]:
    normalized = normalize_code(code)
    if not normalized:
        return None
    return (
        await db.execute(select(Coupon).where(Coupon.code == normalized))
    ).scalar_one_or_none()


async def validate_coupon(db: AsyncSession, code: str, now: Optional[datetime] = None) -> CouponValidation:
    return check_coupon(await get_coupon_by_code(db, code), now)


def discounted_amount(price: int, coupon: Optional[Coupon]) -> int:
    if coupon is None:
        return price
    return max(0, price - coupon.discount_amount)


# ─────────────────────────────────────────────
# ADMIN
# ─────────────────────────────────────────────

def generate_code(prefix: Optional[str] = None, length: int = CODE_LENGTH) -> str:
    random_part = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
    return f"{prefix.strip().upper()}-{random_part}" if prefix and prefix.strip() else random_part


async def create_coupon(
    db: AsyncSession,
    *,
    code: str,
    discount_amount: int,
    expires_at: datetime,
    max_uses: Optional[int] = None,
    description: Optional[str] = None,
) -> Coupon:
    normalized = normalize_code(code)
    if not normalized:
        raise LedgerError("Coupon code is required")
    if await get_coupon_by_code(db, normalized):
        raise AlreadyProcessedError(f"Coupon code {normalized} already exists")

    coupon = Coupon(
        id=str(uuid.uuid4()),
        code=normalized,
        discount_amount=discount_amount,
        expires_at=to_naive_utc(expires_at),
        max_uses=max_uses,
        used_count=0,
        is_active=True,
        description=description,
    )
    db.add(coupon)
    await db.commit()
    logger.info("Coupon created code=%s discount=%s max_uses=%s", normalized, discount_amount, max_uses)
    return coupon


async def bulk_create_coupons(
    db: AsyncSession,
    *,
    count: int,
    discount_amount: int,
    expires_at: datetime,
    max_uses: Optional[int] = 1,
    description: Optional[str] = None,
    prefix: Optional[str] = None,
) -> List[Coupon]:
    if count < 1 or count > MAX_BULK_COUNT:
        raise LedgerError(f"count must be between 1 and {MAX_BULK_COUNT}")

    existing = set((await db.execute(select(Coupon.code))).scalars().all())
    coupons: List[Coupon] = []
    for _ in range(count):
        for _attempt in range(MAX_CODE_ATTEMPTS):
            code = generate_code(prefix)
            if code not in existing:
                break
        else:
            raise LedgerError("Could not generate a unique coupon code, use another prefix")
        existing.add(code)
        coupon = Coupon(
            id=str(uuid.uuid4()),
            code=code,
            discount_amount=discount_amount,
            expires_at=to_naive_utc(expires_at),
            max_uses=max_uses,
            used_count=0,
            is_active=True,
            description=description,
        )
        db.add(coupon)
        coupons.append(coupon)

    await db.commit()
    logger.info("Bulk created %s coupons (prefix=%s)", len(coupons), prefix)
    return coupons


async def get_coupon(db: AsyncSession, coupon_id: str) -> Coupon:
    coupon = await db.get(Coupon, coupon_id)
    if not coupon:
        raise NotFoundError("Coupon not found")
    return coupon


async def update_coupon(db: AsyncSession, coupon_id: str, changes: Dict) -> Coupon:
    coupon = await get_coupon(db, coupon_id)

    if changes.get("code") is not None:
        new_code = normalize_code(changes["code"])
        if not new_code:
            raise LedgerError("Coupon code is required")
        if new_code != coupon.code and await get_coupon_by_code(db, new_code):
            raise AlreadyProcessedError(f"Coupon code {new_code} already exists")
        coupon.code = new_code

    if "max_uses" in changes and changes["max_uses"] is not None and changes["max_uses"] < coupon.used_count:
        raise LedgerError("max_uses cannot be lower than the number of redemptions")

    if changes.get("expires_at") is not None:
        changes = dict(changes, expires_at=to_naive_utc(changes["expires_at"]))

    for field in ("discount_amount", "expires_at", "is_active"):
        if changes.get(field) is not None:
            setattr(coupon, field, changes[field])
    # null is meaningful here: unlimited uses / no description
    for field in ("max_uses", "description"):
        if field in changes:
            setattr(coupon, field, changes[field])

    await db.commit()
    return coupon


async def delete_coupon(db: AsyncSession, coupon_id: str) -> None:
    coupon = await get_coupon(db, coupon_id)
    referenced = (
        await db.execute(select(func.count(Payment.id)).where(Payment.coupon_id == coupon_id))
    ).scalar_one() + (
        await db.execute(select(func.count(PaymentRequest.id)).where(PaymentRequest.coupon_id == coupon_id))
    ).scalar_one()
    if coupon.used_count > 0 or referenced:
        raise AlreadyProcessedError("Coupon has been used; deactivate it instead")
    await db.delete(coupon)
    await db.commit()
    logger.info("Coupon deleted code=%s", coupon.code)


async def list_coupons(db: AsyncSession) -> List[Dict]:
    """All coupons with their redemption records, newest first."""
    coupons = (
        await db.execute(select(Coupon).order_by(Coupon.created_at.desc()))
    ).scalars().all()
    usages = (
        await db.execute(select(CouponUsage).order_by(CouponUsage.used_at.desc()))
    ).scalars().all()

    by_coupon: Dict[str, List[CouponUsage]] = {}
    for u in usages:
        by_coupon.setdefault(u.coupon_id, []).append(u)

    return [{"coupon": c, "usages": by_coupon.get(c.id, [])} for c in coupons]
