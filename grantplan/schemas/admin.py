# FILE: grantplan/schemas/admin.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from grantplan.schemas.payments import Pagination


class ApproveRequest(BaseModel):
    credits_to_add: Optional[int] = Field(None, ge=1)
    admin_note: Optional[str] = None


class RejectRequest(BaseModel):
    admin_note: Optional[str] = None


class ProcessedRequestResponse(BaseModel):
    id: str
    status: str
    credits_added: Optional[int] = None
    current_credits: Optional[int] = None
    admin_note: Optional[str] = None


class CreditOverrideRequest(BaseModel):
    credits: int = Field(..., ge=0)
    reason: Optional[str] = None


class AdminUserItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    email: str
    name: str
    provider: str
    profile_image: Optional[str] = None
    role: str
    credits: int
    created_at: datetime
    updated_at: Optional[datetime] = None


class AdminUserPage(BaseModel):
    data: List[AdminUserItem]
    pagination: Pagination


class CreditOverrideResponse(BaseModel):
    user: AdminUserItem
    previous_credits: int
    credit_diff: int
    message: str
