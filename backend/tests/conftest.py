import asyncio
import os
import sys
from pathlib import Path

import pytest
import sentry_sdk
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Disable outbound Sentry calls during tests
sentry_sdk.init = lambda *args, **kwargs: None  # type: ignore[assignment]
os.environ["SENTRY_DSN"] = ""
os.environ.pop("DATABASE_URL", None)
os.environ.pop("GROQ_API_KEY", None)
os.environ.pop("LLM_API_KEY", None)
test_data_dir = ROOT / "artifacts" / "test-data"
test_data_dir.mkdir(parents=True, exist_ok=True)
os.environ["DATA_DIR"] = str(test_data_dir)

from backend.app.db.core import get_session  # noqa: E402
from backend.app.db.models import (  # noqa: E402
    EventRecord,
    MenuCategoryRecord,
    MenuItemRecord,
    ReservationRecord,
)
from backend.app.health import health_checker  # noqa: E402
from backend.app.main import app  # noqa: E402
from backend.app.settings import settings  # noqa: E402
from backend.app.storage import DB  # noqa: E402
from sqlalchemy import delete  # noqa: E402


async def _purge_async() -> None:
    await DB.ensure_ready()
    async with get_session() as session:
        for model in (ReservationRecord, MenuItemRecord, MenuCategoryRecord, EventRecord):
            await session.execute(delete(model))
        await session.commit()


def _purge() -> None:
    asyncio.run(_purge_async())


@pytest.fixture(scope="session")
def client() -> TestClient:
    return TestClient(app, base_url="http://api.testserver")


@pytest.fixture(autouse=True)
def clean_store() -> None:
    settings.RATE_LIMIT_ENABLED = False
    settings.LLM_API_KEY = None
    settings.SENTRY_DSN = None
    settings.LLM_BACKOFF_SECONDS = 0.0
    limiter = getattr(app.state, "rate_limiter", None)
    if limiter:
        limiter.reset()
    health_checker.clear_cache()
    app.dependency_overrides.clear()
    _purge()
    yield
    app.dependency_overrides.clear()
    _purge()
