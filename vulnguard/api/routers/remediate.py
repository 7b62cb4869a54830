"""Remediation router — the backend endpoint dispatchers POST to.

Callable cross-origin from any browser client. The app-wide CORS middleware
skips ``REMEDIATE_PATH``; every response here, the preflight included,
carries the fixed permissive headers instead.
"""

from __future__ import annotations

import pydantic
import structlog
from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from vulnguard.api.deps import get_remediation_backend
from vulnguard.api.schemas.remediation import RemediateRequest, RemediateResponse
from vulnguard.engines.remediation.backend import RemediationBackend
from vulnguard.models.repository import Repository

log = structlog.get_logger("vulnguard.api")

REMEDIATE_PATH = "/api/v1/remediate"
MISSING_DATA_MESSAGE = "Missing repository or configuration data"

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST",
    "Access-Control-Allow-Headers": "Content-Type",
}

router = APIRouter()


def _missing_data() -> JSONResponse:
    return JSONResponse(
        status_code=400, content={"detail": MISSING_DATA_MESSAGE}, headers=_CORS_HEADERS
    )


@router.options(REMEDIATE_PATH, status_code=204)
async def remediate_preflight() -> Response:
    return Response(status_code=204, headers=_CORS_HEADERS)


@router.post(REMEDIATE_PATH, response_model=RemediateResponse, response_model_exclude_none=True)
async def remediate(
    body: RemediateRequest,
    response: Response,
    backend: RemediationBackend = Depends(get_remediation_backend),
) -> RemediateResponse | JSONResponse:
    if not body.repo or body.config is None:
        return _missing_data()
    try:
        repo = Repository.from_document(body.repo)
    except pydantic.ValidationError as exc:
        log.warning("remediate.invalid_repository", errors=exc.error_count())
        return _missing_data()

    log.info("remediate.received", repo_name=repo.name)
    outcome = await backend.remediate(
        repo,
        body.report,
        jules_api_key=body.config.jules_api_key,
        chat_webhook_url=body.config.chat_webhook_url,
    )
    response.headers.update(_CORS_HEADERS)
    return RemediateResponse(
        success=outcome.success,
        message=outcome.message,
        errors=outcome.errors or None,
    )
