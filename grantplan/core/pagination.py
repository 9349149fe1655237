# grantplan/core/pagination.py
import math
from typing import Any, Dict, Sequence

from sqlalchemy import Select, select, func
from sqlalchemy.ext.asyncio import AsyncSession

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def parse_pagination(page: Any = 1, limit: Any = DEFAULT_LIMIT) -> Dict[str, int]:
    """Clamp raw query values: page >= 1, 1 <= limit <= 100."""
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT
    page = max(1, page)
    limit = min(MAX_LIMIT, max(1, limit))
    return {"page": page, "limit": limit, "skip": (page - 1) * limit}


def pagination_meta(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


async def paginate(db: AsyncSession, stmt: Select, page: int, limit: int) -> Dict[str, Any]:
    """Run `stmt` for one page; returns `{"data": rows, "pagination": meta}`."""
    params = parse_pagination(page, limit)
    total = (
        await db.execute(select(func.count()).select_from(stmt.order_by(None).subquery()))
    ).scalar_one()
    rows: Sequence = (
        await db.execute(stmt.offset(params["skip"]).limit(params["limit"]))
    ).scalars().all()
    return {
        "data": list(rows),
        "pagination": pagination_meta(params["page"], params["limit"], int(total)),
    }
