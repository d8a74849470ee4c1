# tests/conftest.py
from __future__ import annotations

import os
import sys
import logging
import tempfile

import pytest

# Point the app at a throwaway database before glrules is imported
_TMP_DIR = tempfile.mkdtemp(prefix="glrules-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/test.db"
os.environ["AI_SERVICE_URL"] = ""

from httpx import AsyncClient, ASGITransport  # noqa: E402

from glrules.database import Base, engine, init_db  # noqa: E402
from glrules.main import app  # noqa: E402

OWNER = "owner-1"
OTHER_OWNER = "owner-2"


# =========================
# Logging -> stdout
# =========================
@pytest.fixture(scope="session", autouse=True)
def _tests_log_to_stdout():
    """Ensure test logs go to stdout so they show up under pytest -s."""
    root = logging.getLogger()
    if not any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stdout
        for h in root.handlers
    ):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)
    root.setLevel(os.getenv("TEST_LOG_LEVEL", "INFO").upper())


# Make anyio run on asyncio
@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def client():
    await init_db()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def headers():
    return {"X-Owner-Id": OWNER}


@pytest.fixture
def other_headers():
    return {"X-Owner-Id": OTHER_OWNER}

