"""Request context middleware — X-Request-ID plus the repository being served."""

from __future__ import annotations

import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

log = structlog.get_logger("vulnguard.api")

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")
_REPOSITORY_PATH_RE = re.compile(r"^/api/v1/repositories/(?P<repo_id>[^/]+)")
# Collection-level actions that share the /repositories/<segment> shape.
_COLLECTION_ACTIONS = frozenset({"analyze", "scan-all"})

_UNLOGGED_PATHS = frozenset({"/health"})


def repository_id_from_path(path: str) -> str | None:
    match = _REPOSITORY_PATH_RE.match(path)
    if match is None or match["repo_id"] in _COLLECTION_ACTIONS:
        return None
    return match["repo_id"]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind ``request_id`` (and ``repo_id`` on per-repository routes) for the request.

    Scan and remediation events logged while the request is served carry both
    keys, so a slow scan can be traced back to the call that started it. A
    caller-supplied ``X-Request-ID`` is kept when it is a short token,
    otherwise a fresh one is generated; either way it is echoed back.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        raw_id = request.headers.get("x-request-id", "")
        request_id = raw_id if _REQUEST_ID_RE.match(raw_id) else uuid.uuid4().hex
        path = request.url.path

        context = {"request_id": request_id, "method": request.method, "path": path}
        repo_id = repository_id_from_path(path)
        if repo_id is not None:
            context["repo_id"] = repo_id
        tokens = structlog.contextvars.bind_contextvars(**context)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log.exception("request.failed", duration_ms=_elapsed_ms(start))
            raise
        else:
            if path not in _UNLOGGED_PATHS:
                log.info("request.completed", status_code=response.status_code,
                         duration_ms=_elapsed_ms(start))
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            structlog.contextvars.reset_contextvars(**tokens)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 1)
