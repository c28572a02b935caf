import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.core import metrics
from app.db.base import Base
from app.db.session import get_session
from app.main import app


@pytest.fixture
def client() -> TestClient:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

    async def init_models() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(init_models())

    async def override_get_session():
        async with SessionLocal() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    test_client = TestClient(app)
    yield test_client
    test_client.close()
    app.dependency_overrides.clear()


def test_healthcheck(client: TestClient) -> None:
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness(client: TestClient) -> None:
    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


def test_request_id_is_generated_or_echoed(client: TestClient) -> None:
    generated = client.get("/api/v1/health")
    assert generated.headers.get("X-Request-ID")

    echoed = client.get("/api/v1/health", headers={"X-Request-ID": "checkout-1234"})
    assert echoed.headers["X-Request-ID"] == "checkout-1234"

    replaced = client.get("/api/v1/health", headers={"X-Request-ID": "bad id!"})
    assert replaced.headers["X-Request-ID"] != "bad id!"


def test_metrics_snapshot(client: TestClient) -> None:
    metrics.record_order_created()
    metrics.record_order_rejected("coupon_expired")
    metrics.record_order_rejected("coupon_expired")
    metrics.record_order_rejected()

    response = client.get("/api/v1/metrics")
    assert response.status_code == 200
    assert response.json() == {
        "orders_created": 1,
        "orders_rejected": 3,
        "orders_rejected.coupon_expired": 2,
    }
    assert metrics.rejection_counts() == {"coupon_expired": 2}
