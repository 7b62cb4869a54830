"""RemediationDispatcher — fire-and-forget delivery of scan findings.

``dispatch()`` returns as soon as the delivery tasks are scheduled. Each task
runs inside its own failure boundary: whatever happens to the delivery is
logged and never reaches the caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog

from vulnguard.engines.remediation.chat import ChatNotifier
from vulnguard.engines.remediation.jules import JulesClient
from vulnguard.engines.remediation.template import render_backend_payload
from vulnguard.models.repository import Repository
from vulnguard.models.settings import AppSettings
from vulnguard.services import DispatchFailure

log = structlog.get_logger("vulnguard.engine.remediation")


class RemediationDispatcher:
    """Routes a report to the remediation backend, or directly to each channel.

    With ``backend_url`` configured a single POST goes to the backend, which
    fans out to the remediation API and the chat webhook itself. Otherwise
    the remediation API and the chat webhook are called directly, one task
    per configured channel.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        jules: JulesClient | None = None,
        chat: ChatNotifier | None = None,
    ) -> None:
        self._http = http
        self._jules = jules or JulesClient(http)
        self._chat = chat or ChatNotifier(http)
        # Strong references so pending tasks are not garbage collected.
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(
        self, repo: Repository, report: str, settings: AppSettings
    ) -> list[asyncio.Task[None]]:
        """Schedule delivery for *repo* and return the scheduled tasks.

        Silent no-op (returns ``[]``) when no remediation setting is
        configured. Never raises.
        """
        if not settings.remediation_configured:
            log.debug("remediation.not_configured", repo_id=repo.id)
            return []

        jobs: list[tuple[str, Callable[[], Awaitable[None]]]] = []
        if settings.backend_url:
            payload = render_backend_payload(repo, report, settings)
            jobs.append(("backend", lambda: self._post_backend(settings.backend_url, payload)))
        else:
            if settings.jules_api_key:
                jobs.append(
                    ("jules", lambda: self._jules.request_fix(repo, report, settings.jules_api_key))
                )
            if settings.chat_webhook_url:
                jobs.append(("chat", lambda: self._chat.send(repo, settings.chat_webhook_url)))

        tasks: list[asyncio.Task[None]] = []
        for channel, job in jobs:
            try:
                tasks.append(self._spawn(channel, repo.id, job))
            except Exception:
                log.error("remediation.schedule_failed", channel=channel, repo_id=repo.id,
                          exc_info=True)

        log.info(
            "remediation.dispatched",
            repo_id=repo.id,
            channels=[channel for channel, _ in jobs],
        )
        return tasks

    async def drain(self) -> None:
        """Wait for every in-flight delivery to settle (shutdown and tests)."""
        if self._tasks:
            log.info("remediation.draining", pending=self.pending)
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ── internal ───────────────────────────────────────────────────────────

    def _spawn(
        self, channel: str, repo_id: str, job: Callable[[], Awaitable[None]]
    ) -> asyncio.Task[None]:
        task = asyncio.create_task(
            self._guarded(channel, repo_id, job), name=f"remediation-{channel}-{repo_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    async def _guarded(channel: str, repo_id: str, job: Callable[[], Awaitable[None]]) -> None:
        try:
            await job()
        except asyncio.CancelledError:
            raise
        except DispatchFailure as exc:
            log.warning(
                "remediation.delivery_rejected", channel=channel, repo_id=repo_id, error=str(exc)
            )
        except httpx.HTTPError as exc:
            log.warning(
                "remediation.delivery_unreachable",
                channel=channel,
                repo_id=repo_id,
                error=str(exc) or type(exc).__name__,
            )
        except Exception:
            log.error("remediation.delivery_error", channel=channel, repo_id=repo_id,
                      exc_info=True)

    async def _post_backend(self, url: str, payload: dict[str, Any]) -> None:
        response = await self._http.post(url, json=payload)
        if not response.is_success:
            raise DispatchFailure(f"remediation backend returned {response.status_code}")

        errors = None
        if response.headers.get("content-type", "").startswith("application/json"):
            errors = response.json().get("errors")
        if errors:
            log.warning("remediation.backend_partial", errors=errors)
        else:
            log.info("remediation.backend_accepted", status=response.status_code)
