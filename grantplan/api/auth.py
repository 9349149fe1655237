# FILE: grantplan/api/auth.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from grantplan.api.deps import get_current_user, user_to_dict
from grantplan.core.config import TEST_MODE
from grantplan.core.database import get_db
from grantplan.schemas.auth import DevLoginRequest, TokenResponse, UserResponse
from grantplan.services.auth_service import create_token
from grantplan.services.ledger_service import get_or_create_account

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/dev-login", response_model=TokenResponse)
async def dev_login(data: DevLoginRequest, db: AsyncSession = Depends(get_db)):
    """Local login without an identity provider (TEST_MODE only)."""
    if not TEST_MODE:
        raise HTTPException(status_code=403, detail="Dev login only available in TEST_MODE")

    user = await get_or_create_account(db, email=data.email.strip().lower(), name=data.name, provider="dev")
    if data.role == "admin" and user.role != "admin":
        user.role = "admin"
        await db.commit()

    return TokenResponse(
        token=create_token(user.id, user.email, user.role),
        user=UserResponse(**user_to_dict(user)),
    )


@router.get("/me", response_model=UserResponse)
async def auth_me(user=Depends(get_current_user)):
    return UserResponse(**user)
