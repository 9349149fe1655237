# /grantplan/api/credits.py
"""Credit balance, history and spending."""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from grantplan.api.deps import get_current_user, get_product_catalog
from grantplan.core.database import get_db
from grantplan.schemas.credits import (
    CreditBalance,
    CreditHistoryItem,
    ProductResponse,
    UseCreditRequest,
    UseCreditResponse,
)
from grantplan.services.catalog import ProductCatalog
from grantplan.services.ledger_service import get_balance_summary, get_history, use_credit

router = APIRouter(prefix="/api/credits", tags=["credits"])


@router.get("", response_model=CreditBalance)
async def get_credit_balance(user=Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Current balance plus lifetime used / purchased totals."""
    return CreditBalance(**await get_balance_summary(db, user["id"]))


@router.get("/history", response_model=List[CreditHistoryItem])
async def get_credit_history(
    user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    limit: int = Query(100, ge=1, le=500),
):
    entries = await get_history(db, user["id"], limit=limit)
    return [CreditHistoryItem.model_validate(e) for e in entries]


@router.post("/use", response_model=UseCreditResponse)
async def spend_credit(
    data: UseCreditRequest,
    user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Debit one credit for a business plan generation."""
    balance = await use_credit(db, user["id"], data.description, data.business_plan_id)
    return UseCreditResponse(success=True, current_credits=balance, message="1 credit used")


@router.get("/products", response_model=List[ProductResponse])
async def get_products(catalog: ProductCatalog = Depends(get_product_catalog)):
    return [ProductResponse.model_validate(p) for p in catalog.list()]
