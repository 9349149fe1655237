# FILE: grantplan/schemas/coupons.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ValidateCouponRequest(BaseModel):
    code: str


class ValidateCouponResponse(BaseModel):
    valid: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    code: Optional[str] = None
    discount_amount: Optional[int] = None
    expires_at: Optional[datetime] = None


class CouponCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    discount_amount: int = Field(..., gt=0)
    expires_at: datetime
    max_uses: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None


class CouponBulkCreate(BaseModel):
    count: int = Field(..., ge=1, le=100)
    discount_amount: int = Field(..., gt=0)
    expires_at: datetime
    max_uses: Optional[int] = Field(1, ge=1)
    description: Optional[str] = None
    prefix: Optional[str] = Field(None, max_length=20)


class CouponUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=64)
    discount_amount: Optional[int] = Field(None, gt=0)
    expires_at: Optional[datetime] = None
    max_uses: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class CouponUsageItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    user_id: str
    context: str
    payment_id: Optional[str] = None
    payment_request_id: Optional[str] = None
    used_at: datetime


class CouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    code: str
    discount_amount: int
    expires_at: datetime
    max_uses: Optional[int] = None
    used_count: int
    is_active: bool
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class CouponWithUsages(CouponResponse):
    usages: List[CouponUsageItem] = []


class CouponBulkResponse(BaseModel):
    count: int
    coupons: List[CouponResponse]
