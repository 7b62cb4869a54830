"""Dependency injection — session, store, and engine singletons."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from vulnguard.agent.llm_client import LLMClient
from vulnguard.core.database import create_engine, create_session_factory, create_tables
from vulnguard.dao.kv_dao import KVStoreDAO
from vulnguard.engines.assessment.client import AssessmentClient
from vulnguard.engines.remediation.backend import RemediationBackend
from vulnguard.engines.remediation.chat import ChatNotifier
from vulnguard.engines.remediation.dispatcher import RemediationDispatcher
from vulnguard.engines.remediation.jules import JulesClient
from vulnguard.engines.scan.orchestrator import ScanOrchestrator
from vulnguard.services.repository_store import RepositoryStore

# ---------------------------------------------------------------------------
# DAO / service singletons
# ---------------------------------------------------------------------------
_kv_dao = KVStoreDAO()
_repository_store = RepositoryStore(_kv_dao)

# ---------------------------------------------------------------------------
# Engine / session factory (initialised by app lifespan)
# ---------------------------------------------------------------------------
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None

# Built on first use, after .env has been loaded.
_http_client: httpx.AsyncClient | None = None
_assessment_client: AssessmentClient | None = None
_dispatcher: RemediationDispatcher | None = None
_remediation_backend: RemediationBackend | None = None
_orchestrator: ScanOrchestrator | None = None


async def init_database(database_url: str | None = None) -> async_sessionmaker[AsyncSession]:
    """Create the engine, the tables and the session factory. Called once at startup."""
    global _engine, _session_factory  # noqa: PLW0603
    _engine = create_engine(database_url)
    await create_tables(_engine)
    _session_factory = create_session_factory(_engine)
    return _session_factory


async def shutdown() -> None:
    """Let in-flight remediation settle, then close HTTP and database resources."""
    global _engine, _http_client, _dispatcher, _remediation_backend, _orchestrator  # noqa: PLW0603
    if _dispatcher is not None:
        await _dispatcher.drain()
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
        _dispatcher = None
        _remediation_backend = None
    if _engine is not None:
        await _engine.dispose()
        _engine = None
    _orchestrator = None


def set_session_factory(factory: async_sessionmaker[AsyncSession]) -> None:
    """Override session factory (for testing)."""
    global _session_factory, _orchestrator  # noqa: PLW0603
    _session_factory = factory
    _orchestrator = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError("call init_database() before handling requests")
    return _session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a per-request session with automatic commit/rollback."""
    async with get_session_factory()() as session:
        async with session.begin():
            yield session


# ---------------------------------------------------------------------------
# Getters (for Depends())
# ---------------------------------------------------------------------------


def get_http_client() -> httpx.AsyncClient:
    global _http_client  # noqa: PLW0603
    if _http_client is None:
        timeout = float(os.environ.get("VULNGUARD_HTTP_TIMEOUT", "30"))
        _http_client = httpx.AsyncClient(timeout=timeout)
    return _http_client


def get_repository_store() -> RepositoryStore:
    return _repository_store


def get_assessment_client() -> AssessmentClient:
    global _assessment_client  # noqa: PLW0603
    if _assessment_client is None:
        _assessment_client = AssessmentClient(LLMClient())
    return _assessment_client


def get_dispatcher() -> RemediationDispatcher:
    global _dispatcher  # noqa: PLW0603
    if _dispatcher is None:
        _dispatcher = RemediationDispatcher(get_http_client())
    return _dispatcher


def get_remediation_backend() -> RemediationBackend:
    global _remediation_backend  # noqa: PLW0603
    if _remediation_backend is None:
        http = get_http_client()
        _remediation_backend = RemediationBackend(JulesClient(http), ChatNotifier(http))
    return _remediation_backend


def get_orchestrator() -> ScanOrchestrator:
    global _orchestrator  # noqa: PLW0603
    if _orchestrator is None:
        _orchestrator = ScanOrchestrator(
            get_session_factory(),
            _repository_store,
            get_assessment_client(),
            get_dispatcher(),
        )
    return _orchestrator
