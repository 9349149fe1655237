# FILE: grantplan/services/payment_service.py
"""Card payments through the payment gateway.

pending -> completed | failed. The gateway is called with no transaction
open; the finalizing transaction re-checks `status == pending` itself.
"""

import logging
import time
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from grantplan.core.pagination import paginate
from grantplan.models.coupon import Coupon
from grantplan.models.payment import Payment
from grantplan.services.catalog import ProductCatalog, get_catalog
from grantplan.services.coupon_service import discounted_amount, validate_coupon
from grantplan.services.errors import (
    AlreadyProcessedError,
    AmountMismatchError,
    CouponExhaustedError,
    CouponInactiveError,
    GatewayDeclinedError,
    InvalidCouponError,
    NotFoundError,
)
from grantplan.services.ledger_service import LedgerEntryRefs, ledger_transaction
from grantplan.services.payment_gateway import PaymentGateway

logger = logging.getLogger("grantplan.payments")

PENDING = "pending"
COMPLETED = "completed"
FAILED = "failed"


def new_order_id() -> str:
    # toss accepts 6-64 chars of [A-Za-z0-9_-]
    return f"ORDER_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


async def create_payment(
    db: AsyncSession,
    user_id: str,
    product_id: str,
    coupon_code: Optional[str] = None,
    catalog: Optional[ProductCatalog] = None,
) -> Payment:
    product = (catalog or get_catalog()).get(product_id)

    coupon = None
    if coupon_code:
        coupon = (await validate_coupon(db, coupon_code)).raise_if_invalid()

    amount = discounted_amount(product.price, coupon)
    payment = Payment(
        id=str(uuid.uuid4()),
        order_id=new_order_id(),
        user_id=user_id,
        product_id=product.id,
        product_name=product.name,
        amount=amount,
        original_amount=product.price,
        discount_amount=product.price - amount,
        credits_added=product.credits,
        status=PENDING,
        payment_method="card",
        coupon_id=coupon.id if coupon else None,
        created_at=datetime.utcnow(),
    )
    db.add(payment)
    await db.commit()
    logger.info(
        "Payment created order=%s user=%s product=%s amount=%s coupon=%s",
        payment.order_id, user_id, product.id, amount, coupon.code if coupon else None,
    )
    return payment


async def _load_for_confirm(db: AsyncSession, user_id: str, order_id: str, amount: int) -> Payment:
    payment = (
        await db.execute(
            select(Payment)
            .where(Payment.order_id == order_id, Payment.user_id == user_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if not payment:
        raise NotFoundError("Payment not found")
    if payment.status != PENDING:
        raise AlreadyProcessedError(f"Payment is already {payment.status}")
    if payment.amount != amount:
        raise AmountMismatchError()

    if payment.coupon_id:
        # A coupon used up by someone else since checkout must not be charged for
        coupon = await db.get(Coupon, payment.coupon_id, populate_existing=True)
        if coupon is None:
            raise NotFoundError("Coupon not found")
        if not coupon.is_active:
            raise CouponInactiveError()
        if coupon.max_uses is not None and coupon.used_count >= coupon.max_uses:
            raise CouponExhaustedError()
    return payment


async def confirm_payment(
    db: AsyncSession,
    user_id: str,
    order_id: str,
    payment_key: str,
    amount: int,
    gateway: PaymentGateway,
) -> Dict[str, Any]:
    payment = await _load_for_confirm(db, user_id, order_id, amount)
    payment_id = payment.id
    coupon_id = payment.coupon_id
    credits_added = payment.credits_added
    # release the read transaction before talking to the gateway
    await db.commit()

    result = await gateway.confirm(order_id, amount, payment_key)

    if not result.accepted:
        async with ledger_transaction(db) as tx:
            await tx.transition(Payment, payment_id, PENDING, FAILED, payment_key=payment_key, raw=result.raw)
        logger.warning("Payment declined order=%s message=%s", order_id, result.message)
        raise GatewayDeclinedError(f"Payment was declined: {result.message or 'unknown error'}")

    try:
        async with ledger_transaction(db) as tx:
            await tx.transition(
                Payment,
                payment_id,
                PENDING,
                COMPLETED,
                payment_key=payment_key,
                payment_method=result.method or "card",
                paid_at=datetime.utcnow(),
                raw=result.raw,
            )
            if coupon_id:
                await tx.redeem_coupon(coupon_id, user_id, "payment", payment_id=payment_id)
            balance = await tx.credit(
                user_id,
                credits_added,
                "Credit purchase",
                LedgerEntryRefs(payment_id=payment_id),
            )
    except InvalidCouponError:
        # charged at the gateway but the coupon ran out in between
        logger.error(
            "Payment accepted by gateway but coupon redemption failed order=%s payment_key=%s; needs reconciliation",
            order_id, payment_key,
        )
        raise

    logger.info("Payment completed order=%s user=%s credits=+%s", order_id, user_id, credits_added)
    return {
        "payment_id": payment_id,
        "order_id": order_id,
        "status": COMPLETED,
        "credits_added": credits_added,
        "current_credits": balance,
        "message": f"Payment completed. {credits_added} credit(s) added.",
    }


async def list_payments(db: AsyncSession, user_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    stmt = (
        select(Payment)
        .where(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc())
    )
    return await paginate(db, stmt, page, limit)
