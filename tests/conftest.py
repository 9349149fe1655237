"""
Pytest configuration and shared fixtures.

Every test gets its own sqlite database file, so separate sessions behave like
separate requests (each checks out its own connection).
"""
import os
import tempfile

# Must be set before grantplan.core.config is imported.
os.environ.setdefault("TEST_MODE", "true")
os.environ.setdefault("PAYMENT_GATEWAY", "mock")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="grantplan-logs-"))

import uuid
from datetime import datetime, timedelta

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from grantplan.core.database import Base, get_db
import grantplan.models  # noqa: F401
from grantplan.models.coupon import Coupon
from grantplan.models.user import User
from grantplan.services.auth_service import create_token
from grantplan.services.catalog import ProductCatalog
from grantplan.services.payment_gateway import GatewayResult, PaymentGateway

TEST_PRODUCTS = {
    "business_plan_1": {"name": "Plan x1", "credits": 1, "price": 50000},
    "business_plan_3": {"name": "Plan x3", "credits": 3, "price": 50000},
    "cheap": {"name": "Cheap", "credits": 1, "price": 1500},
}


class FakeGateway(PaymentGateway):
    """Scripted gateway. `before_answer` runs while the gateway call is in flight."""

    name = "fake"

    def __init__(self, result=None, error=None):
        self.result = result or GatewayResult(accepted=True, method="card", raw={"status": "DONE"})
        self.error = error
        self.calls = []
        self.before_answer = None

    async def confirm(self, order_id, amount, payment_key):
        self.calls.append((order_id, amount, payment_key))
        if self.before_answer:
            hook, self.before_answer = self.before_answer, None
            await hook()
        if self.error:
            raise self.error
        return self.result


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def catalog():
    return ProductCatalog(TEST_PRODUCTS)


@pytest.fixture
def gateway():
    return FakeGateway()


async def make_user(session_factory, credits=0, role="user", email=None):
    async with session_factory() as s:
        user = User(
            id=str(uuid.uuid4()),
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            name="Tester",
            provider="dev",
            role=role,
            credits=credits,
            created_at=datetime.utcnow(),
        )
        s.add(user)
        await s.commit()
        return user


async def make_coupon(session_factory, code="WELCOME", discount=10000, max_uses=None,
                      expires_in=timedelta(days=30), is_active=True, used_count=0):
    async with session_factory() as s:
        coupon = Coupon(
            id=str(uuid.uuid4()),
            code=code,
            discount_amount=discount,
            expires_at=datetime.utcnow() + expires_in,
            max_uses=max_uses,
            used_count=used_count,
            is_active=is_active,
        )
        s.add(coupon)
        await s.commit()
        return coupon


@pytest_asyncio.fixture
async def user(session_factory):
    return await make_user(session_factory)


@pytest_asyncio.fixture
async def admin(session_factory):
    return await make_user(session_factory, role="admin")


def auth_headers(user):
    return {"Authorization": f"Bearer {create_token(user.id, user.email, user.role)}"}


@pytest_asyncio.fixture
async def client(session_factory, catalog, gateway):
    """In-process client for server:app with database, catalog and gateway swapped out."""
    from grantplan.api.deps import get_gateway, get_product_catalog
    from grantplan.server import app

    async def override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_product_catalog] = lambda: catalog
    app.dependency_overrides[get_gateway] = lambda: gateway

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c

    app.dependency_overrides.clear()
