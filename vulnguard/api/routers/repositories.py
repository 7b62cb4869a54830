"""Repositories router — CRUD, prefill analysis, and scans."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from vulnguard.api.deps import (
    get_assessment_client,
    get_orchestrator,
    get_repository_store,
    get_session,
)
from vulnguard.api.schemas.repository import (
    AnalyzeRequest,
    AnalyzeResponse,
    CreateRepositoryRequest,
    ScanAllAccepted,
    UpdateRepositoryRequest,
)
from vulnguard.engines.assessment.client import AnalysisFailure, AssessmentClient, ScanFailure
from vulnguard.engines.scan.orchestrator import ScanOrchestrator
from vulnguard.models.repository import Repository
from vulnguard.services import NotFoundError, UpstreamError, ValidationError
from vulnguard.services.repository_store import RepositoryStore

log = structlog.get_logger("vulnguard.api")

ANALYZE_FAILED_MESSAGE = "Could not analyze the repository automatically. Please enter the details manually."
SCAN_FAILED_MESSAGE = "Scan failed. Please check your API Key and internet connection."

router = APIRouter()


@router.get("/", response_model=list[Repository])
async def list_repositories(
    session: AsyncSession = Depends(get_session),
    store: RepositoryStore = Depends(get_repository_store),
) -> list[Repository]:
    return await store.list_repositories(session)


@router.post("/", response_model=Repository, status_code=201)
async def create_repository(
    body: CreateRepositoryRequest,
    session: AsyncSession = Depends(get_session),
    store: RepositoryStore = Depends(get_repository_store),
) -> Repository:
    repo = Repository(**body.model_dump())
    await store.upsert_repository(session, repo)
    log.info("repository.created", repo_id=repo.id, url=repo.url)
    return repo


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_repository(
    body: AnalyzeRequest,
    assessment: AssessmentClient = Depends(get_assessment_client),
) -> AnalyzeResponse:
    """Suggest name, technology, version and dependencies for a URL."""
    try:
        details = await assessment.analyze(body.url)
    except AnalysisFailure as exc:
        raise UpstreamError(ANALYZE_FAILED_MESSAGE) from exc
    return AnalyzeResponse(
        name=details.name,
        technology=details.technology,
        version=details.version,
        dependencies=details.dependencies,
    )


@router.post("/scan-all", response_model=ScanAllAccepted, status_code=202)
async def scan_all_repositories(
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    store: RepositoryStore = Depends(get_repository_store),
    orchestrator: ScanOrchestrator = Depends(get_orchestrator),
) -> ScanAllAccepted:
    queued = len(await store.list_repositories(session))
    background_tasks.add_task(orchestrator.run_scan_all)
    return ScanAllAccepted(queued=queued)


@router.get("/{repo_id}", response_model=Repository)
async def get_repository(
    repo_id: str,
    session: AsyncSession = Depends(get_session),
    store: RepositoryStore = Depends(get_repository_store),
) -> Repository:
    repo = await store.get_repository(session, repo_id)
    if repo is None:
        raise NotFoundError("repository not found")
    return repo


@router.put("/{repo_id}", response_model=Repository)
async def update_repository(
    repo_id: str,
    body: UpdateRepositoryRequest,
    session: AsyncSession = Depends(get_session),
    store: RepositoryStore = Depends(get_repository_store),
) -> Repository:
    fields = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    if fields.get("url") == "":
        raise ValidationError("url must not be empty")
    repo = await store.update_repository(session, repo_id, **fields)
    if repo is None:
        raise NotFoundError("repository not found")
    return repo


@router.delete("/{repo_id}", status_code=204)
async def delete_repository(
    repo_id: str,
    session: AsyncSession = Depends(get_session),
    store: RepositoryStore = Depends(get_repository_store),
) -> Response:
    await store.delete_repository(session, repo_id)
    return Response(status_code=204)


# No session dependency: the orchestrator commits each state change in its
# own transaction, and an open request transaction would hold the SQLite lock.
@router.post("/{repo_id}/scan", response_model=Repository)
async def scan_repository(
    repo_id: str,
    orchestrator: ScanOrchestrator = Depends(get_orchestrator),
) -> Repository:
    try:
        return await orchestrator.run_scan_by_id(repo_id)
    except ScanFailure as exc:
        raise UpstreamError(SCAN_FAILED_MESSAGE) from exc
