"""Tests for the remediation engine — dispatcher, channels, backend, payloads.

Outbound HTTP goes through ``httpx.MockTransport``; each test records the
requests it sees.
"""

import asyncio
import json

import httpx
import pytest

from vulnguard.engines.remediation.backend import RemediationBackend
from vulnguard.engines.remediation.chat import ChatNotifier
from vulnguard.engines.remediation.dispatcher import RemediationDispatcher
from vulnguard.engines.remediation.jules import JulesClient
from vulnguard.engines.remediation.template import (
    render_backend_payload,
    render_chat_card,
    render_fix_request,
)
from vulnguard.models.repository import RepoStatus, Repository
from vulnguard.models.settings import AppSettings
from vulnguard.services import DispatchFailure

WEBHOOK = "https://chat.googleapis.com/v1/spaces/X/messages?key=k"
BACKEND = "https://backend.example/remediate"
JULES = "https://jules.example/v1/fixes"


def _repo(**overrides) -> Repository:
    defaults = {
        "name": "legacy-app",
        "url": "https://github.com/org/legacy-app",
        "technology": "Node.js",
        "version": "14.0.0",
        "dependencies": "express 4.16",
        "status": RepoStatus.CRITICAL,
    }
    defaults.update(overrides)
    return Repository(**defaults)


class _Recorder:
    """MockTransport handler that records requests and answers with *status*."""

    def __init__(self, status: int = 200, body: dict | None = None, exc: Exception | None = None):
        self.requests: list[httpx.Request] = []
        self._status = status
        self._body = body if body is not None else {}
        self._exc = exc

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._exc is not None:
            raise self._exc
        return httpx.Response(self._status, json=self._body)

    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]


def _http(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _dispatcher(http: httpx.AsyncClient, jules_endpoint: str = "") -> RemediationDispatcher:
    return RemediationDispatcher(http, jules=JulesClient(http, endpoint=jules_endpoint))


# ── payloads ──────────────────────────────────────────────────────────────


class TestTemplates:
    def test_chat_card(self):
        card = render_chat_card(_repo())["cards"][0]
        assert card["header"]["title"] == "🚨 Security Vulnerability Detected"
        assert card["header"]["subtitle"] == "Project: legacy-app"
        widgets = card["sections"][0]["widgets"]
        assert "Node.js v14.0.0" in widgets[0]["textParagraph"]["text"]
        button = widgets[1]["buttons"][0]["textButton"]
        assert button["text"] == "View Repository"
        assert button["onClick"]["openLink"]["url"] == "https://github.com/org/legacy-app"

    def test_chat_card_escapes_html(self):
        card = render_chat_card(_repo(technology="<script>"))["cards"][0]
        text = card["sections"][0]["widgets"][0]["textParagraph"]["text"]
        assert "<script>" not in text
        assert "&lt;script&gt;" in text

    def test_fix_request(self):
        body = render_fix_request(_repo(), "CVE report")
        assert body == {
            "repositoryUrl": "https://github.com/org/legacy-app",
            "issueDescription": "CVE report",
            "action": "create_pull_request",
            "context": {"technology": "Node.js", "dependencies": "express 4.16"},
        }

    def test_backend_payload(self):
        repo = _repo()
        settings = AppSettings(jules_api_key="k", chat_webhook_url=WEBHOOK, backend_url=BACKEND)
        payload = render_backend_payload(repo, "report", settings)
        assert payload["repo"]["id"] == repo.id
        assert payload["repo"]["status"] == "critical"
        assert payload["report"] == "report"
        # The backend URL itself is not forwarded.
        assert payload["config"] == {"julesApiKey": "k", "chatWebhookUrl": WEBHOOK}


# ── channels ──────────────────────────────────────────────────────────────


class TestJulesClient:
    async def test_simulated_without_endpoint(self):
        rec = _Recorder()
        async with _http(rec) as http:
            await JulesClient(http, endpoint="").request_fix(_repo(), "report", "key")
        assert rec.requests == []

    async def test_endpoint_from_env(self, monkeypatch):
        monkeypatch.setenv("VULNGUARD_JULES_URL", JULES)
        async with _http(_Recorder()) as http:
            assert JulesClient(http).endpoint == JULES

    async def test_posts_fix_request(self):
        rec = _Recorder()
        async with _http(rec) as http:
            await JulesClient(http, endpoint=JULES).request_fix(_repo(), "report", "secret")
        [request] = rec.requests
        assert str(request.url) == JULES
        assert request.headers["Authorization"] == "Bearer secret"
        assert json.loads(request.content)["action"] == "create_pull_request"

    async def test_non_2xx_raises(self):
        async with _http(_Recorder(status=401)) as http:
            with pytest.raises(DispatchFailure, match="401"):
                await JulesClient(http, endpoint=JULES).request_fix(_repo(), "r", "bad")


class TestChatNotifier:
    async def test_posts_card(self):
        rec = _Recorder()
        async with _http(rec) as http:
            await ChatNotifier(http).send(_repo(), WEBHOOK)
        [request] = rec.requests
        assert request.headers["Content-Type"] == "application/json; charset=UTF-8"
        assert json.loads(request.content)["cards"][0]["header"]["subtitle"] == "Project: legacy-app"

    async def test_rejection_carries_body(self):
        def handler(request):
            return httpx.Response(400, text="Invalid JSON payload")

        async with _http(handler) as http:
            with pytest.raises(DispatchFailure, match="Invalid JSON payload"):
                await ChatNotifier(http).send(_repo(), WEBHOOK)


# ── dispatcher ────────────────────────────────────────────────────────────


class TestDispatchGating:
    async def test_not_configured_is_noop(self):
        rec = _Recorder()
        async with _http(rec) as http:
            dispatcher = _dispatcher(http)
            tasks = dispatcher.dispatch(_repo(), "report", AppSettings())
            await dispatcher.drain()
        assert tasks == []
        assert rec.requests == []

    async def test_webhook_only_sends_exactly_one_request(self):
        rec = _Recorder()
        async with _http(rec) as http:
            dispatcher = _dispatcher(http)
            dispatcher.dispatch(_repo(), "report", AppSettings(chat_webhook_url=WEBHOOK))
            await dispatcher.drain()
        assert rec.urls() == [WEBHOOK]

    async def test_backend_takes_over_all_channels(self):
        rec = _Recorder(body={"success": True, "message": "ok"})
        settings = AppSettings(jules_api_key="k", chat_webhook_url=WEBHOOK, backend_url=BACKEND)
        async with _http(rec) as http:
            dispatcher = _dispatcher(http, jules_endpoint=JULES)
            tasks = dispatcher.dispatch(_repo(), "report", settings)
            await dispatcher.drain()

        assert len(tasks) == 1
        assert rec.urls() == [BACKEND]
        body = json.loads(rec.requests[0].content)
        assert set(body) == {"repo", "report", "config"}
        assert body["config"]["julesApiKey"] == "k"

    async def test_direct_mode_one_task_per_channel(self):
        rec = _Recorder()
        settings = AppSettings(jules_api_key="k", chat_webhook_url=WEBHOOK)
        async with _http(rec) as http:
            dispatcher = _dispatcher(http, jules_endpoint=JULES)
            tasks = dispatcher.dispatch(_repo(), "report", settings)
            await dispatcher.drain()

        assert len(tasks) == 2
        assert sorted(rec.urls()) == sorted([JULES, WEBHOOK])

    async def test_simulated_jules_sends_nothing(self):
        rec = _Recorder()
        async with _http(rec) as http:
            dispatcher = _dispatcher(http)
            tasks = dispatcher.dispatch(_repo(), "report", AppSettings(jules_api_key="k"))
            await dispatcher.drain()
        assert len(tasks) == 1
        assert rec.requests == []


class TestDispatchIsolation:
    async def test_returns_before_delivery_completes(self):
        release = asyncio.Event()
        seen: list[str] = []

        async def handler(request):
            await release.wait()
            seen.append(str(request.url))
            return httpx.Response(200)

        async with _http(handler) as http:
            dispatcher = _dispatcher(http)
            [task] = dispatcher.dispatch(_repo(), "r", AppSettings(chat_webhook_url=WEBHOOK))
            await asyncio.sleep(0)
            assert not task.done()
            assert dispatcher.pending == 1
            release.set()
            await dispatcher.drain()

        assert seen == [WEBHOOK]
        assert dispatcher.pending == 0

    @pytest.mark.parametrize(
        "recorder",
        [
            _Recorder(status=500),
            _Recorder(exc=httpx.ConnectError("connection refused")),
            _Recorder(exc=ValueError("unexpected")),
        ],
        ids=["http-500", "unreachable", "unexpected-error"],
    )
    async def test_delivery_failure_never_escapes(self, recorder):
        async with _http(recorder) as http:
            dispatcher = _dispatcher(http)
            [task] = dispatcher.dispatch(_repo(), "r", AppSettings(backend_url=BACKEND))
            await dispatcher.drain()

        assert task.done()
        assert task.exception() is None
        assert len(recorder.requests) == 1

    async def test_one_failing_channel_does_not_stop_the_other(self):
        def handler(request):
            if str(request.url) == JULES:
                raise httpx.ConnectError("down")
            return httpx.Response(200)

        async with _http(handler) as http:
            dispatcher = _dispatcher(http, jules_endpoint=JULES)
            tasks = dispatcher.dispatch(
                _repo(), "r", AppSettings(jules_api_key="k", chat_webhook_url=WEBHOOK)
            )
            await dispatcher.drain()

        assert all(t.done() and t.exception() is None for t in tasks)


# ── backend ───────────────────────────────────────────────────────────────


class TestRemediationBackend:
    async def test_both_channels(self):
        rec = _Recorder()
        async with _http(rec) as http:
            backend = RemediationBackend(JulesClient(http, endpoint=JULES), ChatNotifier(http))
            outcome = await backend.remediate(
                _repo(), "report", jules_api_key="k", chat_webhook_url=WEBHOOK
            )
        assert outcome.success is True
        assert outcome.message == "Remediation triggered successfully"
        assert outcome.errors == []
        assert rec.urls() == [JULES, WEBHOOK]

    async def test_collects_channel_errors(self):
        async with _http(_Recorder(status=500)) as http:
            backend = RemediationBackend(JulesClient(http, endpoint=JULES), ChatNotifier(http))
            outcome = await backend.remediate(
                _repo(), "report", jules_api_key="k", chat_webhook_url=WEBHOOK
            )
        assert outcome.success is True
        assert len(outcome.errors) == 2
        assert outcome.errors[0].startswith("Jules: ")
        assert outcome.errors[1].startswith("Chat: ")

    async def test_nothing_configured(self):
        rec = _Recorder()
        async with _http(rec) as http:
            backend = RemediationBackend(JulesClient(http, endpoint=JULES), ChatNotifier(http))
            outcome = await backend.remediate(_repo(), "report")
        assert outcome.errors == []
        assert rec.requests == []
