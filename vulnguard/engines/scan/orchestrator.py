"""ScanOrchestrator — per-repository scan lifecycle and sequential scan-all.

State machine::

    unknown ──► scanning ──► safe | warning | critical
       ▲            │             │
       └── failure ─┘             └──► scanning (rescan)

Every transition is written to the store immediately, each in its own
transaction, so readers observe ``scanning`` while the model call is in
flight. The orchestrator keeps no state of its own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vulnguard.engines.assessment.client import AssessmentClient, ScanFailure
from vulnguard.engines.remediation.dispatcher import RemediationDispatcher
from vulnguard.models.repository import ACTIONABLE_STATUSES, RepoStatus, Repository
from vulnguard.services import NotFoundError
from vulnguard.services.repository_store import RepositoryStore

log = structlog.get_logger("vulnguard.engine.scan")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ScanAllSummary:
    """Outcome of a sequential scan over every repository."""

    results: list[Repository] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def scanned(self) -> int:
        return len(self.results)


class ScanOrchestrator:
    """Runs scans, persists every state change, and triggers remediation."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store: RepositoryStore,
        assessment: AssessmentClient,
        dispatcher: RemediationDispatcher,
    ) -> None:
        self._session_factory = session_factory
        self._store = store
        self._assessment = assessment
        self._dispatcher = dispatcher

    async def run_scan(self, repo: Repository) -> Repository:
        """Scan *repo* and return it as persisted after the scan.

        Steps:
        1. Persist ``scanning`` (the previous report is kept).
        2. Call the assessment model.
        3. On warning/critical with remediation configured, dispatch
           remediation without awaiting it and stamp ``fix_delegated_at``.
        4. Persist status, report, links and ``last_scanned``.

        On any assessment error the repository is persisted as ``unknown``
        and :class:`ScanFailure` is raised.
        """
        log.info("scan.started", repo_id=repo.id, repo_name=repo.name)
        await self._persist(repo, status=RepoStatus.SCANNING)

        try:
            result = await self._assessment.scan(repo)
        except Exception as exc:
            await self._persist(repo, status=RepoStatus.UNKNOWN)
            log.warning("scan.failed", repo_id=repo.id, error=str(exc))
            if isinstance(exc, ScanFailure):
                raise
            raise ScanFailure(f"scan of {repo.name or repo.url} failed: {exc}") from exc

        finished = repo.model_copy(
            update={
                "status": result.status,
                "last_report": result.report,
                "grounding_links": result.links,
                "last_scanned": _now(),
            }
        )

        delegated = False
        if result.status in ACTIONABLE_STATUSES:
            async with self._session_factory() as session:
                settings = await self._store.get_settings(session)
            if settings.remediation_configured:
                # Stamped at invocation: delivery may still fail later and
                # the marker stays (the dispatcher never reports back).
                finished.fix_delegated_at = _now()
                self._dispatcher.dispatch(finished, result.report, settings)
                delegated = True

        stored = await self._persist(
            repo,
            status=finished.status,
            last_report=finished.last_report,
            grounding_links=finished.grounding_links,
            last_scanned=finished.last_scanned,
            fix_delegated_at=finished.fix_delegated_at,
        )
        log.info(
            "scan.completed",
            repo_id=repo.id,
            status=finished.status.value,
            links=len(finished.grounding_links),
            remediation=delegated,
        )
        return stored or finished

    async def run_scan_by_id(self, repo_id: str) -> Repository:
        """Load the stored repository and scan it.

        Raises :class:`NotFoundError` if *repo_id* is unknown.
        """
        async with self._session_factory() as session:
            repo = await self._store.get_repository(session, repo_id)
        if repo is None:
            raise NotFoundError("repository not found")
        return await self.run_scan(repo)

    async def run_scan_all(self) -> ScanAllSummary:
        """Scan every repository one at a time, in list order.

        Sequential to stay under the model provider's rate limits.
        A failing repository is recorded and the loop moves on.
        """
        async with self._session_factory() as session:
            repo_ids = [r.id for r in await self._store.list_repositories(session)]

        summary = ScanAllSummary()
        for repo_id in repo_ids:
            try:
                summary.results.append(await self.run_scan_by_id(repo_id))
            except NotFoundError:
                # Deleted while earlier repositories were being scanned.
                log.info("scan.skipped_deleted", repo_id=repo_id)
            except Exception:
                summary.failed.append(repo_id)
                log.warning("scan.batch_item_failed", repo_id=repo_id, exc_info=True)

        log.info("scan.batch_completed", scanned=summary.scanned, failed=len(summary.failed))
        return summary

    # ── private helpers ───────────────────────────────────────────────

    async def _persist(self, repo: Repository, **fields: Any) -> Repository | None:
        """Merge *fields* into the stored copy of *repo* in its own transaction.

        Merging into the stored copy keeps metadata edits made while the scan
        was running. A repository that is not stored yet is inserted; one
        deleted mid-scan is not re-created (returns None).
        """
        async with self._session_factory() as session:
            async with session.begin():
                stored = await self._store.update_repository(session, repo.id, **fields)
                if stored is not None:
                    return stored
                if fields.get("status") == RepoStatus.SCANNING:
                    return await self._store.upsert_repository(
                        session, repo.model_copy(update=fields)
                    )
        log.info("scan.repository_gone", repo_id=repo.id)
        return None
