import os

# settings are read at import time
os.environ.setdefault("DB_URL", "sqlite+aiosqlite://")
os.environ.setdefault("POS_API_TOKEN", "test-token")
os.environ.setdefault("AI_SERVICE_URL", "http://ai.test")

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from pos_sync.db.base import enable_sqlite_foreign_keys, make_session_factory
from pos_sync.db.init_db import create_schema, seed_watermark

from factories import WATERMARK


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'sync.db'}")
    enable_sqlite_foreign_keys(engine)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def seeded(session_factory):
    await seed_watermark(session_factory, WATERMARK)
    return session_factory
