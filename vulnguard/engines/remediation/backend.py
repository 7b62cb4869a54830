"""RemediationBackend — server side of the remediation endpoint.

Receives ``{repo, report, config}`` from a dispatcher and fans out to the
remediation API and the chat webhook. Each channel fails independently;
failures are collected into the outcome rather than raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from vulnguard.engines.remediation.chat import ChatNotifier
from vulnguard.engines.remediation.jules import JulesClient
from vulnguard.models.repository import Repository

log = structlog.get_logger("vulnguard.engine.remediation")


@dataclass
class RemediationOutcome:
    success: bool = True
    message: str = "Remediation triggered successfully"
    errors: list[str] = field(default_factory=list)


class RemediationBackend:
    def __init__(self, jules: JulesClient, chat: ChatNotifier) -> None:
        self._jules = jules
        self._chat = chat

    async def remediate(
        self,
        repo: Repository,
        report: str,
        *,
        jules_api_key: str = "",
        chat_webhook_url: str = "",
    ) -> RemediationOutcome:
        outcome = RemediationOutcome()

        if jules_api_key:
            log.info("backend.jules_triggered", repo_name=repo.name)
            try:
                await self._jules.request_fix(repo, report, jules_api_key)
            except Exception as exc:
                log.error("backend.jules_failed", repo_name=repo.name, error=str(exc))
                outcome.errors.append(f"Jules: {exc}")

        if chat_webhook_url:
            log.info("backend.chat_triggered", repo_name=repo.name)
            try:
                await self._chat.send(repo, chat_webhook_url)
            except Exception as exc:
                log.error("backend.chat_failed", repo_name=repo.name, error=str(exc))
                outcome.errors.append(f"Chat: {exc}")

        return outcome
