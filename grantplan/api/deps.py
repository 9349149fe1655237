# FILE: grantplan/api/deps.py

import jwt
from datetime import timezone

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from grantplan.core.database import get_db
from grantplan.models.user import User
from grantplan.services.auth_service import decode_token
from grantplan.services.catalog import ProductCatalog, get_catalog
from grantplan.services.payment_gateway import PaymentGateway, get_payment_gateway

security = HTTPBearer(auto_error=False)


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "credits": user.credits,
        "provider": user.provider,
        "created_at": user.created_at.replace(tzinfo=timezone.utc).isoformat(),
    }


async def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: AsyncSession = Depends(get_db),
):
    if not credentials or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("user_id") or payload.get("sub")
    if not user_id or not isinstance(user_id, str):
        raise HTTPException(status_code=401, detail="Invalid token payload")

    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return user_to_dict(user)


async def require_admin(user=Depends(get_current_user)):
    # role is read from the database, not from the token
    if user["role"] != "admin":
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return user


def get_product_catalog() -> ProductCatalog:
    return get_catalog()


def get_gateway() -> PaymentGateway:
    try:
        return get_payment_gateway()
    except RuntimeError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
