"""Settings router — the single remediation settings record."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vulnguard.api.deps import get_repository_store, get_session
from vulnguard.models.settings import AppSettings
from vulnguard.services.repository_store import RepositoryStore

router = APIRouter()


@router.get("/settings", response_model=AppSettings)
async def get_settings(
    session: AsyncSession = Depends(get_session),
    store: RepositoryStore = Depends(get_repository_store),
) -> AppSettings:
    return await store.get_settings(session)


@router.put("/settings", response_model=AppSettings)
async def save_settings(
    body: AppSettings,
    session: AsyncSession = Depends(get_session),
    store: RepositoryStore = Depends(get_repository_store),
) -> AppSettings:
    """Replace the settings record; omitted fields reset to empty."""
    return await store.save_settings(session, body)
