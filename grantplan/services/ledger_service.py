# FILE: grantplan/services/ledger_service.py
"""Credit ledger.

Every balance change goes through a `LedgerTransaction`: the account row is
locked, `users.credits` is changed with a guarded UPDATE and exactly one
`credit_history` row is appended. Commit or rollback covers all of it, so
`credits == SUM(credit_history.amount)` holds per account at all times.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Type

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from grantplan.core.database import Base
from grantplan.models.coupon import Coupon, CouponUsage
from grantplan.models.credit_history import CreditHistory
from grantplan.models.user import User
from grantplan.services.errors import (
    AlreadyProcessedError,
    CouponExhaustedError,
    CouponInactiveError,
    InsufficientCreditsError,
    LedgerError,
    NotFoundError,
)

logger = logging.getLogger("grantplan.ledger")

PURCHASE = "purchase"
USE = "use"


@dataclass
class LedgerEntryRefs:
    payment_id: Optional[str] = None
    payment_request_id: Optional[str] = None
    business_plan_id: Optional[str] = None


class LedgerTransaction:
    """Typed operations that are only valid inside `ledger_transaction()`."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.entries: List[CreditHistory] = []

    async def _lock_account(self, account_id: str) -> int:
        credits = (
            await self.db.execute(
                select(User.credits).where(User.id == account_id).with_for_update()
            )
        ).scalar_one_or_none()
        if credits is None:
            raise NotFoundError("Account not found")
        return int(credits)

    async def _current_credits(self, account_id: str) -> int:
        return int(
            (await self.db.execute(select(User.credits).where(User.id == account_id))).scalar_one()
        )

    def _append(self, account_id: str, amount: int, entry_type: str, description: str,
                refs: Optional[LedgerEntryRefs]) -> CreditHistory:
        refs = refs or LedgerEntryRefs()
        entry = CreditHistory(
            user_id=account_id,
            type=entry_type,
            amount=amount,
            description=description,
            payment_id=refs.payment_id,
            payment_request_id=refs.payment_request_id,
            business_plan_id=refs.business_plan_id,
            created_at=datetime.utcnow(),
        )
        self.db.add(entry)
        self.entries.append(entry)
        return entry

    async def apply_delta(
        self,
        account_id: str,
        amount: int,
        entry_type: str,
        description: str,
        refs: Optional[LedgerEntryRefs] = None,
    ) -> int:
        """Change the balance by `amount` and append the matching entry."""
        if amount == 0:
            raise LedgerError("Ledger delta must not be zero")
        if entry_type not in (PURCHASE, USE):
            raise LedgerError(f"Unknown ledger entry type: {entry_type}")
        if entry_type == PURCHASE and amount < 0 or entry_type == USE and amount > 0:
            raise LedgerError(f"Amount sign does not match entry type {entry_type}")

        balance = await self._lock_account(account_id)
        if balance + amount < 0:
            raise InsufficientCreditsError(
                f"Not enough credits (balance {balance}, requested {-amount})"
            )

        result = await self.db.execute(
            update(User)
            .where(User.id == account_id, User.credits + amount >= 0)
            .values(credits=User.credits + amount, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InsufficientCreditsError("Not enough credits")

        self._append(account_id, amount, entry_type, description, refs)
        await self.db.flush()
        new_balance = await self._current_credits(account_id)
        logger.info("Ledger %s %+d account=%s balance=%s", entry_type, amount, account_id, new_balance)
        return new_balance

    async def credit(self, account_id: str, amount: int, description: str,
                     refs: Optional[LedgerEntryRefs] = None) -> int:
        if amount <= 0:
            raise LedgerError("Credit amount must be positive")
        return await self.apply_delta(account_id, amount, PURCHASE, description, refs)

    async def debit(self, account_id: str, amount: int, description: str,
                    refs: Optional[LedgerEntryRefs] = None) -> int:
        if amount <= 0:
            raise LedgerError("Debit amount must be positive")
        return await self.apply_delta(account_id, -amount, USE, description, refs)

    async def set_balance(self, account_id: str, new_value: int,
                          description: Optional[str] = None) -> Dict[str, int]:
        """Administrative override to an absolute value."""
        if new_value < 0:
            raise LedgerError("Credits must be 0 or more")

        previous = await self._lock_account(account_id)
        diff = new_value - previous
        description = description or f"Admin {'grant' if diff > 0 else 'deduction'} of credits"
        if diff != 0:
            result = await self.db.execute(
                update(User)
                .where(User.id == account_id, User.credits == previous)
                .values(credits=new_value, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise AlreadyProcessedError("Balance changed concurrently, retry")
            self._append(account_id, diff, PURCHASE if diff > 0 else USE, description, None)
            await self.db.flush()
            logger.info("Ledger override account=%s %s -> %s", account_id, previous, new_value)
        return {"previous": previous, "current": new_value, "diff": diff}

    async def redeem_coupon(
        self,
        coupon_id: str,
        account_id: str,
        context: str,
        *,
        payment_id: Optional[str] = None,
        payment_request_id: Optional[str] = None,
    ) -> CouponUsage:
        """Consume one use of a coupon; fails instead of exceeding max_uses."""
        result = await self.db.execute(
            update(Coupon)
            .where(
                Coupon.id == coupon_id,
                Coupon.is_active.is_(True),
                (Coupon.max_uses.is_(None)) | (Coupon.used_count < Coupon.max_uses),
            )
            .values(used_count=Coupon.used_count + 1, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            coupon = await self.db.get(Coupon, coupon_id, populate_existing=True)
            if coupon is None:
                raise NotFoundError("Coupon not found")
            if not coupon.is_active:
                raise CouponInactiveError()
            raise CouponExhaustedError()

        usage = CouponUsage(
            coupon_id=coupon_id,
            user_id=account_id,
            context=context,
            payment_id=payment_id,
            payment_request_id=payment_request_id,
            used_at=datetime.utcnow(),
        )
        self.db.add(usage)
        await self.db.flush()
        logger.info("Coupon %s redeemed by %s (%s)", coupon_id, account_id, context)
        return usage

    async def transition(
        self,
        model: Type[Base],
        row_id: str,
        from_status: str,
        to_status: str,
        **values: Any,
    ) -> None:
        """Compare-and-set a status column; a lost race is AlreadyProcessed."""
        result = await self.db.execute(
            update(model)
            .where(model.id == row_id, model.status == from_status)
            .values(status=to_status, updated_at=datetime.utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyProcessedError(f"{model.__name__} is no longer {from_status}")


@asynccontextmanager
async def ledger_transaction(db: AsyncSession) -> AsyncIterator[LedgerTransaction]:
    """One atomic unit: committed on success, rolled back on any error."""
    tx = LedgerTransaction(db)
    try:
        yield tx
        await db.commit()
    except Exception:
        await db.rollback()
        raise


# ─────────────────────────────────────────────
# READ SIDE / SIMPLE OPERATIONS
# ─────────────────────────────────────────────

async def apply_delta(
    db: AsyncSession,
    account_id: str,
    amount: int,
    entry_type: str,
    description: str,
    refs: Optional[LedgerEntryRefs] = None,
) -> int:
    async with ledger_transaction(db) as tx:
        return await tx.apply_delta(account_id, amount, entry_type, description, refs)


async def use_credit(
    db: AsyncSession,
    account_id: str,
    description: Optional[str] = None,
    business_plan_id: Optional[str] = None,
) -> int:
    """Spend one credit on a business plan generation."""
    async with ledger_transaction(db) as tx:
        return await tx.debit(
            account_id,
            1,
            description or "Business plan generation",
            LedgerEntryRefs(business_plan_id=business_plan_id),
        )


async def override_credits(db: AsyncSession, account_id: str, credits: int, reason: Optional[str] = None) -> Dict[str, int]:
    async with ledger_transaction(db) as tx:
        return await tx.set_balance(account_id, credits, reason)


async def get_account(db: AsyncSession, account_id: str) -> User:
    user = await db.get(User, account_id, populate_existing=True)
    if not user:
        raise NotFoundError("Account not found")
    return user


async def get_balance_summary(db: AsyncSession, account_id: str) -> Dict[str, int]:
    user = await get_account(db, account_id)
    sums = dict(
        (
            await db.execute(
                select(CreditHistory.type, func.coalesce(func.sum(CreditHistory.amount), 0))
                .where(CreditHistory.user_id == account_id)
                .group_by(CreditHistory.type)
            )
        ).all()
    )
    return {
        "credits": user.credits,
        "used_credits": abs(int(sums.get(USE, 0))),
        "total_purchased": int(sums.get(PURCHASE, 0)),
    }


async def get_history(db: AsyncSession, account_id: str, limit: int = 100) -> List[CreditHistory]:
    return list(
        (
            await db.execute(
                select(CreditHistory)
                .where(CreditHistory.user_id == account_id)
                .order_by(CreditHistory.created_at.desc(), CreditHistory.id.desc())
                .limit(limit)
            )
        ).scalars().all()
    )


async def ledger_sum(db: AsyncSession, account_id: str) -> int:
    return int(
        (
            await db.execute(
                select(func.coalesce(func.sum(CreditHistory.amount), 0))
                .where(CreditHistory.user_id == account_id)
            )
        ).scalar_one()
    )


async def get_or_create_account(
    db: AsyncSession,
    *,
    email: str,
    name: str,
    provider: str = "dev",
    profile_image: Optional[str] = None,
) -> User:
    """First login creates the account with a zero balance."""
    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if user:
        return user
    user = User(
        id=str(uuid.uuid4()),
        email=email,
        name=name,
        provider=provider,
        profile_image=profile_image,
        role="user",
        credits=0,
        created_at=datetime.utcnow(),
    )
    db.add(user)
    await db.commit()
    logger.info("Account created email=%s provider=%s", email, provider)
    return user
