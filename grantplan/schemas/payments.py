# FILE: grantplan/schemas/payments.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


# ─────────────────────────────────────────────
# GATEWAY PAYMENTS
# ─────────────────────────────────────────────

class CreatePaymentRequest(BaseModel):
    product_id: str
    coupon_code: Optional[str] = None


class CreatePaymentResponse(BaseModel):
    payment_id: str
    order_id: str
    amount: int
    original_amount: int
    discount_amount: int
    product_name: str
    customer_name: str
    customer_email: str


class ConfirmPaymentRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    payment_key: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0)


class ConfirmPaymentResponse(BaseModel):
    payment_id: str
    order_id: str
    status: str
    credits_added: int
    current_credits: int
    message: str


class PaymentItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    order_id: str
    product_id: str
    product_name: str
    amount: int
    original_amount: int
    discount_amount: int
    credits_added: int
    status: str
    payment_method: str
    created_at: datetime
    paid_at: Optional[datetime] = None


class PaymentPage(BaseModel):
    data: List[PaymentItem]
    pagination: Pagination


# ─────────────────────────────────────────────
# BANK TRANSFER REQUESTS
# ─────────────────────────────────────────────

class SubmitPaymentRequest(BaseModel):
    depositor_name: str = Field(..., min_length=1, max_length=100)
    coupon_code: Optional[str] = None
    product_id: Optional[str] = None


class PaymentRequestItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    user_id: str
    depositor_name: str
    product_id: str
    amount: int
    original_amount: int
    discount_amount: int
    coupon_code: Optional[str] = None
    credits_to_add: int
    status: str
    admin_note: Optional[str] = None
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class PaymentRequestPage(BaseModel):
    data: List[PaymentRequestItem]
    pagination: Pagination
