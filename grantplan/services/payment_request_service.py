# FILE: grantplan/services/payment_request_service.py
"""Bank transfer (무통장 입금) requests.

pending -> approved | rejected, decided by an admin after the deposit shows up
on the bank statement. The coupon is redeemed on approval, together with the
credit grant.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from grantplan.core.config import BANK_TRANSFER_PRODUCT_ID, MIN_DEPOSIT_AMOUNT
from grantplan.core.pagination import paginate
from grantplan.models.payment_request import PaymentRequest
from grantplan.services.catalog import ProductCatalog, get_catalog
from grantplan.services.coupon_service import discounted_amount, validate_coupon
from grantplan.services.errors import (
    AlreadyProcessedError,
    BelowMinimumError,
    LedgerError,
    NotFoundError,
)
from grantplan.services.ledger_service import LedgerEntryRefs, ledger_transaction

logger = logging.getLogger("grantplan.payment_requests")

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"
STATUSES = (PENDING, APPROVED, REJECTED)


async def submit_request(
    db: AsyncSession,
    user_id: str,
    depositor_name: str,
    coupon_code: Optional[str] = None,
    product_id: Optional[str] = None,
    catalog: Optional[ProductCatalog] = None,
    min_amount: int = MIN_DEPOSIT_AMOUNT,
) -> PaymentRequest:
    depositor_name = (depositor_name or "").strip()
    if not depositor_name:
        raise LedgerError("Depositor name is required")

    product = (catalog or get_catalog()).get(product_id or BANK_TRANSFER_PRODUCT_ID)

    coupon = None
    if coupon_code:
        coupon = (await validate_coupon(db, coupon_code)).raise_if_invalid()

    amount = discounted_amount(product.price, coupon)
    if amount < min_amount:
        raise BelowMinimumError(f"Deposit amount must be at least {min_amount}")

    request = PaymentRequest(
        id=str(uuid.uuid4()),
        user_id=user_id,
        depositor_name=depositor_name,
        product_id=product.id,
        amount=amount,
        original_amount=product.price,
        discount_amount=product.price - amount,
        coupon_id=coupon.id if coupon else None,
        coupon_code=coupon.code if coupon else None,
        credits_to_add=product.credits,
        status=PENDING,
        created_at=datetime.utcnow(),
    )
    db.add(request)
    await db.commit()
    logger.info(
        "Payment request submitted id=%s user=%s amount=%s coupon=%s",
        request.id, user_id, amount, request.coupon_code,
    )
    return request


async def list_my_requests(db: AsyncSession, user_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    stmt = (
        select(PaymentRequest)
        .where(PaymentRequest.user_id == user_id)
        .order_by(PaymentRequest.created_at.desc())
    )
    return await paginate(db, stmt, page, limit)


async def list_requests(db: AsyncSession, status: Optional[str] = None,
                        page: int = 1, limit: int = 10) -> Dict[str, Any]:
    stmt = select(PaymentRequest).order_by(PaymentRequest.created_at.desc())
    if status:
        if status not in STATUSES:
            raise LedgerError(f"Unknown status: {status}")
        stmt = stmt.where(PaymentRequest.status == status)
    return await paginate(db, stmt, page, limit)


async def get_request(db: AsyncSession, request_id: str) -> PaymentRequest:
    request = await db.get(PaymentRequest, request_id, populate_existing=True)
    if not request:
        raise NotFoundError("Payment request not found")
    return request


async def _load_pending(db: AsyncSession, request_id: str) -> PaymentRequest:
    request = await get_request(db, request_id)
    if request.status != PENDING:
        raise AlreadyProcessedError(f"Payment request is already {request.status}")
    return request


async def approve_request(
    db: AsyncSession,
    request_id: str,
    admin_id: str,
    credits_to_add: Optional[int] = None,
    admin_note: Optional[str] = None,
) -> Dict[str, Any]:
    request = await _load_pending(db, request_id)
    credits = request.credits_to_add if credits_to_add is None else credits_to_add
    if credits <= 0:
        raise LedgerError("credits_to_add must be positive")
    user_id = request.user_id
    coupon_id = request.coupon_id

    async with ledger_transaction(db) as tx:
        await tx.transition(
            PaymentRequest,
            request_id,
            PENDING,
            APPROVED,
            credits_to_add=credits,
            admin_note=admin_note,
            processed_by=admin_id,
            processed_at=datetime.utcnow(),
        )
        if coupon_id:
            await tx.redeem_coupon(coupon_id, user_id, "bank_transfer", payment_request_id=request_id)
        balance = await tx.credit(
            user_id,
            credits,
            "Bank transfer approved",
            LedgerEntryRefs(payment_request_id=request_id),
        )

    logger.info("Payment request approved id=%s by=%s credits=+%s", request_id, admin_id, credits)
    return {
        "id": request_id,
        "status": APPROVED,
        "credits_added": credits,
        "current_credits": balance,
    }


async def reject_request(
    db: AsyncSession,
    request_id: str,
    admin_id: str,
    admin_note: Optional[str] = None,
) -> Dict[str, Any]:
    await _load_pending(db, request_id)

    async with ledger_transaction(db) as tx:
        await tx.transition(
            PaymentRequest,
            request_id,
            PENDING,
            REJECTED,
            admin_note=admin_note,
            processed_by=admin_id,
            processed_at=datetime.utcnow(),
        )

    logger.info("Payment request rejected id=%s by=%s", request_id, admin_id)
    return {"id": request_id, "status": REJECTED, "admin_note": admin_note}
