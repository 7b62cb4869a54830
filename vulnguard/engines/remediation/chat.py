"""ChatNotifier — post a vulnerability card to a chat incoming webhook."""

from __future__ import annotations

import httpx
import structlog

from vulnguard.engines.remediation.template import render_chat_card
from vulnguard.models.repository import Repository
from vulnguard.services import DispatchFailure

log = structlog.get_logger("vulnguard.engine.remediation")


class ChatNotifier:
    """Thin async wrapper around a Google Chat incoming webhook."""

    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    async def send(self, repo: Repository, webhook_url: str) -> None:
        """Post the card; raises :class:`DispatchFailure` on a non-2xx response."""
        response = await self._http.post(
            webhook_url,
            json=render_chat_card(repo),
            headers={"Content-Type": "application/json; charset=UTF-8"},
        )
        if not response.is_success:
            # Chat webhooks usually answer errors as text/plain
            raise DispatchFailure(f"chat webhook returned {response.status_code}: {response.text}")
        log.info("remediation.chat_notified", repo_id=repo.id, status=response.status_code)
