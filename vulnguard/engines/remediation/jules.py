"""Remediation API client — delegates a fix request (pull request) for a report."""

from __future__ import annotations

import os

import httpx
import structlog

from vulnguard.engines.remediation.template import render_fix_request
from vulnguard.models.repository import Repository
from vulnguard.services import DispatchFailure

log = structlog.get_logger("vulnguard.engine.remediation")


class JulesClient:
    """POSTs fix requests to the remediation API at ``VULNGUARD_JULES_URL``.

    The remediation API has no public endpoint yet; when the URL is unset the
    request is logged as simulated instead of sent.
    """

    def __init__(self, http: httpx.AsyncClient, endpoint: str | None = None) -> None:
        self._http = http
        self.endpoint = endpoint if endpoint is not None else os.environ.get(
            "VULNGUARD_JULES_URL", ""
        )

    async def request_fix(self, repo: Repository, report: str, api_key: str) -> None:
        """Raises :class:`DispatchFailure` on a non-2xx response."""
        if not self.endpoint:
            log.info(
                "remediation.jules_simulated",
                repo_id=repo.id,
                repo_name=repo.name,
                key_prefix=api_key[:4] + "..." if api_key else "none",
            )
            return

        response = await self._http.post(
            self.endpoint,
            json=render_fix_request(repo, report),
            headers={"Authorization": f"Bearer {api_key}"},
        )
        if not response.is_success:
            raise DispatchFailure(
                f"remediation API returned {response.status_code}: {response.reason_phrase}"
            )
        log.info("remediation.jules_requested", repo_id=repo.id, status=response.status_code)
