from collections.abc import AsyncGenerator

import httpx
import pytest
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession

from src.base.dependencies import get_session
from src.customer.router import router as customer_router
from src.ingest.router import router as webhook_router
from src.maintenance.router import router as maintenance_router


@pytest.fixture
def app(db_session: AsyncSession) -> FastAPI:
    test_app = FastAPI()
    test_app.include_router(webhook_router)
    test_app.include_router(customer_router)
    test_app.include_router(maintenance_router)

    async def override_session() -> AsyncSession:  # type: ignore[misc]
        yield db_session  # type: ignore[misc]

    test_app.dependency_overrides[get_session] = override_session
    return test_app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)  # type: ignore[arg-type]
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_header() -> dict[str, str]:
    return {"X-Shop-Token": "tok-main-street"}
