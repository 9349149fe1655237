# /grantplan/api/admin.py
"""Admin: bank transfer approval, user lookup and credit overrides."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from grantplan.api.deps import require_admin
from grantplan.core.database import get_db
from grantplan.core.pagination import paginate
from grantplan.models.user import User
from grantplan.schemas.admin import (
    AdminUserItem,
    AdminUserPage,
    ApproveRequest,
    CreditOverrideRequest,
    CreditOverrideResponse,
    ProcessedRequestResponse,
    RejectRequest,
)
from grantplan.schemas.payments import PaymentRequestItem, PaymentRequestPage
from grantplan.services import payment_request_service
from grantplan.services.ledger_service import get_account, override_credits

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ================== PAYMENT REQUESTS ==================

@router.get("/payment-requests", response_model=PaymentRequestPage)
async def list_payment_requests(
    admin=Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    status: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(10),
):
    result = await payment_request_service.list_requests(db, status, page, limit)
    return PaymentRequestPage(
        data=[PaymentRequestItem.model_validate(r) for r in result["data"]],
        pagination=result["pagination"],
    )


@router.post("/payment-requests/{request_id}/approve", response_model=ProcessedRequestResponse)
async def approve_payment_request(
    request_id: str,
    data: Optional[ApproveRequest] = None,
    admin=Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    data = data or ApproveRequest()
    result = await payment_request_service.approve_request(
        db, request_id, admin["id"], credits_to_add=data.credits_to_add, admin_note=data.admin_note
    )
    return ProcessedRequestResponse(**result, admin_note=data.admin_note)


@router.post("/payment-requests/{request_id}/reject", response_model=ProcessedRequestResponse)
async def reject_payment_request(
    request_id: str,
    data: Optional[RejectRequest] = None,
    admin=Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    data = data or RejectRequest()
    result = await payment_request_service.reject_request(db, request_id, admin["id"], data.admin_note)
    return ProcessedRequestResponse(**result)


# ================== USERS ==================

@router.get("/users", response_model=AdminUserPage)
async def list_users(
    admin=Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    search: str = Query(""),
    page: int = Query(1),
    limit: int = Query(10),
):
    stmt = select(User).order_by(User.created_at.desc())
    if search:
        stmt = stmt.where(or_(User.email.contains(search), User.name.contains(search)))
    result = await paginate(db, stmt, page, limit)
    return AdminUserPage(
        data=[AdminUserItem.model_validate(u) for u in result["data"]],
        pagination=result["pagination"],
    )


@router.get("/users/{user_id}", response_model=AdminUserItem)
async def get_user(user_id: str, admin=Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return AdminUserItem.model_validate(await get_account(db, user_id))


@router.patch("/users/{user_id}/credits", response_model=CreditOverrideResponse)
async def set_user_credits(
    user_id: str,
    data: CreditOverrideRequest,
    admin=Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    change = await override_credits(db, user_id, data.credits, data.reason)
    user = await get_account(db, user_id)
    await db.refresh(user)
    return CreditOverrideResponse(
        user=AdminUserItem.model_validate(user),
        previous_credits=change["previous"],
        credit_diff=change["diff"],
        message="Credits updated",
    )
