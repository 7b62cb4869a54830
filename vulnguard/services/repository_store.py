"""RepositoryStore — repository list and settings record on top of the KV store."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from vulnguard.dao.kv_dao import KVStoreDAO
from vulnguard.models.repository import Repository
from vulnguard.models.settings import AppSettings
from vulnguard.services import ValidationError

log = structlog.get_logger("vulnguard.store")

REPOSITORIES_KEY = "vulnguard_repos"
SETTINGS_KEY = "vulnguard_settings"


class RepositoryStore:
    """Stateless service owning the canonical repository list.

    Every write rewrites the whole list (or the whole settings record); there
    is no partial update at the storage layer and no in-memory cache.
    Single-actor access is assumed: concurrent writers race, last write wins.
    """

    def __init__(self, kv_dao: KVStoreDAO) -> None:
        self._kv = kv_dao

    # ── repositories ──────────────────────────────────────────────────

    async def list_repositories(self, session: AsyncSession) -> list[Repository]:
        """Return all repositories in insertion order."""
        data = await self._kv.get(session, REPOSITORIES_KEY)
        if not data:
            return []
        return [Repository.from_document(item) for item in data]

    async def get_repository(self, session: AsyncSession, repo_id: str) -> Repository | None:
        for repo in await self.list_repositories(session):
            if repo.id == repo_id:
                return repo
        return None

    async def upsert_repository(self, session: AsyncSession, repo: Repository) -> Repository:
        """Replace the repository with the same id in place, or append it."""
        repos = await self.list_repositories(session)
        for index, existing in enumerate(repos):
            if existing.id == repo.id:
                repos[index] = repo
                break
        else:
            repos.append(repo)

        await self._write(session, repos)
        log.debug("store.repository_saved", repo_id=repo.id, status=repo.status.value)
        return repo

    async def update_repository(
        self, session: AsyncSession, repo_id: str, **fields: Any
    ) -> Repository | None:
        """Merge *fields* into a stored repository.

        Returns the updated repository, or None if *repo_id* is unknown.
        """
        if "id" in fields:
            raise ValidationError("'id' is immutable and cannot be updated")

        repos = await self.list_repositories(session)
        for index, existing in enumerate(repos):
            if existing.id == repo_id:
                merged = existing.model_copy(update=fields)
                # model_copy skips validation; round-trip to coerce field types
                repos[index] = Repository.model_validate(merged.model_dump())
                await self._write(session, repos)
                return repos[index]
        return None

    async def delete_repository(self, session: AsyncSession, repo_id: str) -> None:
        """Remove the repository with *repo_id*; no-op if absent."""
        repos = await self.list_repositories(session)
        remaining = [r for r in repos if r.id != repo_id]
        if len(remaining) == len(repos):
            return
        await self._write(session, remaining)
        log.info("store.repository_deleted", repo_id=repo_id)

    # ── settings ──────────────────────────────────────────────────────

    async def get_settings(self, session: AsyncSession) -> AppSettings:
        """Return the settings record, or empty defaults if none was saved."""
        data = await self._kv.get(session, SETTINGS_KEY)
        return AppSettings.from_document(data)

    async def save_settings(self, session: AsyncSession, settings: AppSettings) -> AppSettings:
        """Overwrite the settings record wholesale (no merge)."""
        await self._kv.set(session, SETTINGS_KEY, settings.to_document())
        log.info(
            "store.settings_saved",
            jules_configured=bool(settings.jules_api_key),
            webhook_configured=bool(settings.chat_webhook_url),
            backend_configured=bool(settings.backend_url),
        )
        return settings

    # ── private helpers ───────────────────────────────────────────────

    async def _write(self, session: AsyncSession, repos: list[Repository]) -> None:
        await self._kv.set(session, REPOSITORIES_KEY, [r.to_document() for r in repos])
