"""Shared fixtures for vulnguard tests.

Every test gets its own SQLite database file under ``tmp_path``; no server
is needed. Outbound HTTP is served by ``httpx.MockTransport`` and the model
by ``AsyncMock`` stand-ins for :class:`LLMClient`.
"""

import os

# Keep litellm from fetching its model cost map in a background thread; the
# fetch races test-module imports and can deadlock collection offline.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import pytest
import pytest_asyncio

from vulnguard.core.database import create_engine, create_session_factory, create_tables
from vulnguard.dao.kv_dao import KVStoreDAO
from vulnguard.services.repository_store import RepositoryStore


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'vulnguard-test.db'}"


@pytest_asyncio.fixture
async def engine(db_url):
    eng = create_engine(db_url)
    await create_tables(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    """A session inside an open transaction, rolled back after the test."""
    async with session_factory() as sess:
        async with sess.begin():
            yield sess
            await sess.rollback()


@pytest.fixture
def store():
    return RepositoryStore(KVStoreDAO())
