# /grantplan/api/coupons.py
"""Coupon preview (any caller) and coupon management (admin)."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from grantplan.api.deps import require_admin
from grantplan.core.database import get_db
from grantplan.schemas.coupons import (
    CouponBulkCreate,
    CouponBulkResponse,
    CouponCreate,
    CouponResponse,
    CouponUpdate,
    CouponUsageItem,
    CouponWithUsages,
    ValidateCouponRequest,
    ValidateCouponResponse,
)
from grantplan.services import coupon_service

router = APIRouter(prefix="/api/coupons", tags=["coupons"])


@router.post("/validate", response_model=ValidateCouponResponse)
async def validate_coupon(data: ValidateCouponRequest, db: AsyncSession = Depends(get_db)):
    """Preview a coupon before checkout; nothing is redeemed here."""
    result = await coupon_service.validate_coupon(db, data.code)
    if not result.valid:
        return ValidateCouponResponse(valid=False, reason=result.reason, message=result.message)
    return ValidateCouponResponse(
        valid=True,
        code=result.coupon.code,
        discount_amount=result.coupon.discount_amount,
        expires_at=result.coupon.expires_at,
    )


# ─────────────────────────────────────────────
# ADMIN
# ─────────────────────────────────────────────

@router.get("", response_model=List[CouponWithUsages])
async def list_coupons(admin=Depends(require_admin), db: AsyncSession = Depends(get_db)):
    rows = await coupon_service.list_coupons(db)
    return [
        CouponWithUsages(
            **CouponResponse.model_validate(row["coupon"]).model_dump(),
            usages=[CouponUsageItem.model_validate(u) for u in row["usages"]],
        )
        for row in rows
    ]


@router.post("", response_model=CouponResponse, status_code=201)
async def create_coupon(data: CouponCreate, admin=Depends(require_admin), db: AsyncSession = Depends(get_db)):
    coupon = await coupon_service.create_coupon(
        db,
        code=data.code,
        discount_amount=data.discount_amount,
        expires_at=data.expires_at,
        max_uses=data.max_uses,
        description=data.description,
    )
    return CouponResponse.model_validate(coupon)


@router.post("/bulk", response_model=CouponBulkResponse, status_code=201)
async def bulk_create_coupons(
    data: CouponBulkCreate,
    admin=Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    coupons = await coupon_service.bulk_create_coupons(
        db,
        count=data.count,
        discount_amount=data.discount_amount,
        expires_at=data.expires_at,
        max_uses=data.max_uses,
        description=data.description,
        prefix=data.prefix,
    )
    return CouponBulkResponse(
        count=len(coupons),
        coupons=[CouponResponse.model_validate(c) for c in coupons],
    )


@router.patch("/{coupon_id}", response_model=CouponResponse)
async def update_coupon(
    coupon_id: str,
    data: CouponUpdate,
    admin=Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    coupon = await coupon_service.update_coupon(db, coupon_id, data.model_dump(exclude_unset=True))
    return CouponResponse.model_validate(coupon)


@router.delete("/{coupon_id}")
async def delete_coupon(coupon_id: str, admin=Depends(require_admin), db: AsyncSession = Depends(get_db)):
    await coupon_service.delete_coupon(db, coupon_id)
    return {"message": "Coupon deleted"}
