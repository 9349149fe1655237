# /grantplan/api/payment_requests.py
"""Bank transfer requests, user side."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from grantplan.api.deps import get_current_user, get_product_catalog
from grantplan.core.database import get_db
from grantplan.schemas.payments import PaymentRequestItem, PaymentRequestPage, SubmitPaymentRequest
from grantplan.services.catalog import ProductCatalog
from grantplan.services.payment_request_service import list_my_requests, submit_request

router = APIRouter(prefix="/api/payment-requests", tags=["payment-requests"])


@router.post("", response_model=PaymentRequestItem, status_code=201)
async def create_payment_request(
    data: SubmitPaymentRequest,
    user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    catalog: ProductCatalog = Depends(get_product_catalog),
):
    request = await submit_request(
        db,
        user["id"],
        data.depositor_name,
        coupon_code=data.coupon_code,
        product_id=data.product_id,
        catalog=catalog,
    )
    return PaymentRequestItem.model_validate(request)


@router.get("/me", response_model=PaymentRequestPage)
async def get_my_payment_requests(
    user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    page: int = Query(1),
    limit: int = Query(10),
):
    result = await list_my_requests(db, user["id"], page, limit)
    return PaymentRequestPage(
        data=[PaymentRequestItem.model_validate(r) for r in result["data"]],
        pagination=result["pagination"],
    )
