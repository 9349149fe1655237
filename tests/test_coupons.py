"""
Coupon validation, redemption caps and admin management.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from grantplan.models.coupon import Coupon, CouponUsage
from grantplan.services import coupon_service
from grantplan.services.coupon_service import CODE_ALPHABET, check_coupon, discounted_amount
from grantplan.services.errors import (
    AlreadyProcessedError,
    CouponExhaustedError,
    CouponExpiredError,
    CouponInactiveError,
    CouponNotFoundError,
    LedgerError,
)
from grantplan.services.ledger_service import ledger_transaction

from tests.conftest import make_coupon, make_user


@pytest.mark.asyncio
async def test_validate_is_case_insensitive(db, session_factory):
    await make_coupon(session_factory, code="WELCOME10")
    result = await coupon_service.validate_coupon(db, "  welcome10 ")
    assert result.valid
    assert result.coupon.code == "WELCOME10"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs, reason",
    [
        ({"is_active": False}, "inactive"),
        ({"expires_in": timedelta(seconds=-1)}, "expired"),
        ({"max_uses": 2, "used_count": 2}, "exhausted_uses"),
    ],
)
async def test_validate_reasons(db, session_factory, kwargs, reason):
    await make_coupon(session_factory, code="CODE", **kwargs)
    result = await coupon_service.validate_coupon(db, "code")
    assert not result.valid
    assert result.reason == reason


@pytest.mark.asyncio
async def test_validate_unknown_code(db):
    result = await coupon_service.validate_coupon(db, "NOPE")
    assert (result.valid, result.reason) == (False, "not_found")
    with pytest.raises(CouponNotFoundError):
        result.raise_if_invalid()


@pytest.mark.asyncio
async def test_inactive_is_reported_before_expired(db, session_factory):
    await make_coupon(session_factory, code="OLD", is_active=False, expires_in=timedelta(days=-3))
    result = await coupon_service.validate_coupon(db, "OLD")
    assert result.reason == "inactive"
    with pytest.raises(CouponInactiveError):
        result.raise_if_invalid()


def test_expiry_boundary_counts_as_expired():
    now = datetime(2026, 1, 1, 12, 0, 0)
    coupon = Coupon(code="X", discount_amount=1, expires_at=now, max_uses=None, used_count=0, is_active=True)
    assert check_coupon(coupon, now).reason == "expired"
    assert check_coupon(coupon, now - timedelta(seconds=1)).valid
    with pytest.raises(CouponExpiredError):
        check_coupon(coupon, now).raise_if_invalid()


def test_discount_never_goes_below_zero():
    coupon = Coupon(discount_amount=60000)
    assert discounted_amount(50000, coupon) == 0
    assert discounted_amount(50000, Coupon(discount_amount=10000)) == 40000
    assert discounted_amount(50000, None) == 50000


@pytest.mark.asyncio
async def test_validation_does_not_redeem(db, session_factory):
    coupon = await make_coupon(session_factory, code="LOOK", max_uses=1)
    for _ in range(3):
        assert (await coupon_service.validate_coupon(db, "LOOK")).valid

    async with session_factory() as s:
        fresh = await s.get(Coupon, coupon.id)
        assert fresh.used_count == 0
        assert (await s.execute(select(func.count(CouponUsage.id)))).scalar_one() == 0


@pytest.mark.asyncio
async def test_single_use_coupon_raced_by_two_redemptions(session_factory):
    coupon = await make_coupon(session_factory, code="ONCE", max_uses=1)
    first = await make_user(session_factory)
    second = await make_user(session_factory)

    async with session_factory() as a, session_factory() as b:
        # both requests pass validation before either redeems
        assert (await coupon_service.validate_coupon(a, "ONCE")).valid
        assert (await coupon_service.validate_coupon(b, "ONCE")).valid

        async with ledger_transaction(a) as tx:
            await tx.redeem_coupon(coupon.id, first.id, "payment")

        with pytest.raises(CouponExhaustedError):
            async with ledger_transaction(b) as tx:
                await tx.redeem_coupon(coupon.id, second.id, "payment")

    async with session_factory() as s:
        fresh = await s.get(Coupon, coupon.id)
        assert fresh.used_count == 1
        usages = (await s.execute(select(CouponUsage))).scalars().all()
        assert [u.user_id for u in usages] == [first.id]


@pytest.mark.asyncio
async def test_redeem_inactive_coupon_fails(db, session_factory, user):
    coupon = await make_coupon(session_factory, code="OFF", is_active=False)
    with pytest.raises(CouponInactiveError):
        async with ledger_transaction(db) as tx:
            await tx.redeem_coupon(coupon.id, user.id, "payment")


# ─────────────────────────────────────────────
# ADMIN
# ─────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_coupon_normalizes_code_and_rejects_duplicates(db):
    expires = datetime.now(timezone.utc) + timedelta(days=7)
    coupon = await coupon_service.create_coupon(db, code="spring", discount_amount=5000, expires_at=expires)
    assert coupon.code == "SPRING"
    assert coupon.expires_at.tzinfo is None

    with pytest.raises(AlreadyProcessedError):
        await coupon_service.create_coupon(db, code="Spring", discount_amount=1000, expires_at=expires)


@pytest.mark.asyncio
async def test_bulk_create_uses_unambiguous_codes(db):
    expires = datetime.utcnow() + timedelta(days=7)
    coupons = await coupon_service.bulk_create_coupons(
        db, count=20, discount_amount=10000, expires_at=expires, prefix="event"
    )
    assert len(coupons) == 20
    codes = {c.code for c in coupons}
    assert len(codes) == 20
    for code in codes:
        prefix, body = code.split("-")
        assert prefix == "EVENT"
        assert len(body) == 6
        assert set(body) <= set(CODE_ALPHABET)
    assert all(c.max_uses == 1 for c in coupons)


@pytest.mark.asyncio
async def test_bulk_create_count_limits(db):
    expires = datetime.utcnow() + timedelta(days=7)
    for count in (0, 101):
        with pytest.raises(LedgerError):
            await coupon_service.bulk_create_coupons(db, count=count, discount_amount=1, expires_at=expires)


@pytest.mark.asyncio
async def test_update_cannot_lower_cap_below_usage(db, session_factory):
    coupon = await make_coupon(session_factory, code="CAP", max_uses=5, used_count=3)
    with pytest.raises(LedgerError):
        await coupon_service.update_coupon(db, coupon.id, {"max_uses": 2})

    updated = await coupon_service.update_coupon(db, coupon.id, {"max_uses": 3, "is_active": False})
    assert (updated.max_uses, updated.is_active) == (3, False)


@pytest.mark.asyncio
async def test_update_rejects_blank_code(db, session_factory):
    coupon = await make_coupon(session_factory, code="KEEP")
    with pytest.raises(LedgerError):
        await coupon_service.update_coupon(db, coupon.id, {"code": "   "})

    assert await coupon_service.get_coupon_by_code(db, "KEEP") is not None

    renamed = await coupon_service.update_coupon(db, coupon.id, {"code": " summer "})
    assert renamed.code == "SUMMER"


@pytest.mark.asyncio
async def test_used_coupon_cannot_be_deleted(db, session_factory):
    used = await make_coupon(session_factory, code="USED", used_count=1)
    unused = await make_coupon(session_factory, code="FRESH")

    with pytest.raises(AlreadyProcessedError):
        await coupon_service.delete_coupon(db, used.id)
    await coupon_service.delete_coupon(db, unused.id)

    assert await coupon_service.get_coupon_by_code(db, "FRESH") is None
    assert await coupon_service.get_coupon_by_code(db, "USED") is not None
