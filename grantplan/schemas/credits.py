# FILE: grantplan/schemas/credits.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class CreditBalance(BaseModel):
    credits: int
    used_credits: int
    total_purchased: int


class CreditHistoryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    type: str
    amount: int
    description: str
    payment_id: Optional[str] = None
    payment_request_id: Optional[str] = None
    business_plan_id: Optional[str] = None
    created_at: datetime


class UseCreditRequest(BaseModel):
    business_plan_id: Optional[str] = None
    description: Optional[str] = None


class UseCreditResponse(BaseModel):
    success: bool
    current_credits: int
    message: str


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    name: str
    credits: int
    price: int
