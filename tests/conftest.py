import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("REMOTE_BACKEND", "memory")
os.environ.pop("GMAIL_USER", None)
os.environ.pop("GMAIL_APP_PASSWORD", None)

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from app.auth.security import create_access_token
from app.core.config import settings
from app.core.services import AppServices, build_memory_services
from app.main import create_app

from helpers import ADMIN_ID, SCHOOL_ID, FakeClock


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
async def services(tmp_path, clock) -> AsyncGenerator[AppServices, None]:
    """Memory backends plus a throwaway SQLite file for the local stores."""
    svc = build_memory_services(
        settings,
        database_url=f"sqlite+aiosqlite:///{tmp_path}/test.db",
        clock=clock,
    )
    await svc.startup(start_background=False)
    yield svc
    await svc.shutdown()


@pytest.fixture()
async def client(services: AppServices) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(services)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def auth_headers() -> dict:
    token = create_access_token(
        subject={
            "sub": ADMIN_ID,
            "admin_id": ADMIN_ID,
            "school_id": SCHOOL_ID,
            "role": "Principal",
            "email": "principal@example.com",
            "name": "Ada Principal",
            "school_name": "Hill Station Secondary",
        }
    )
    return {"Authorization": f"Bearer {token}"}
