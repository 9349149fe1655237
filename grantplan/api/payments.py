# /grantplan/api/payments.py
"""Card payments: create an order, confirm it after the gateway checkout."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from grantplan.api.deps import get_current_user, get_gateway, get_product_catalog
from grantplan.core.database import get_db
from grantplan.schemas.payments import (
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    CreatePaymentRequest,
    CreatePaymentResponse,
    PaymentItem,
    PaymentPage,
)
from grantplan.services.catalog import ProductCatalog
from grantplan.services.payment_gateway import PaymentGateway
from grantplan.services.payment_service import confirm_payment, create_payment, list_payments

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("", response_model=CreatePaymentResponse)
async def create_order(
    data: CreatePaymentRequest,
    user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    catalog: ProductCatalog = Depends(get_product_catalog),
):
    payment = await create_payment(db, user["id"], data.product_id, data.coupon_code, catalog)
    # the frontend opens the gateway checkout with these values
    return CreatePaymentResponse(
        payment_id=payment.id,
        order_id=payment.order_id,
        amount=payment.amount,
        original_amount=payment.original_amount,
        discount_amount=payment.discount_amount,
        product_name=payment.product_name,
        customer_name=user["name"],
        customer_email=user["email"],
    )


@router.post("/confirm", response_model=ConfirmPaymentResponse)
async def confirm_order(
    data: ConfirmPaymentRequest,
    user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
):
    result = await confirm_payment(db, user["id"], data.order_id, data.payment_key, data.amount, gateway)
    return ConfirmPaymentResponse(**result)


@router.get("", response_model=PaymentPage)
async def get_payments(
    user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    page: int = Query(1),
    limit: int = Query(10),
):
    result = await list_payments(db, user["id"], page, limit)
    return PaymentPage(
        data=[PaymentItem.model_validate(p) for p in result["data"]],
        pagination=result["pagination"],
    )
