"""AssessmentClient — search-grounded repository analysis and vulnerability scan.

The model is asked for free text (structured output cannot be combined with
search grounding), so all parsing of its answers lives here. The
orchestrator only ever sees :class:`ScanResult` and
:class:`RepositoryDetails`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import structlog

from vulnguard.agent.llm_client import Citation, LLMClient
from vulnguard.agent.prompts.assessment import format_analyze_prompt, format_scan_prompt
from vulnguard.models.repository import GroundingLink, RepoStatus, Repository
from vulnguard.services import UpstreamError

log = structlog.get_logger("vulnguard.engine.assessment")

DEFAULT_VERSION = "1.0.0"
EMPTY_REPORT = "No report generated."
DEFAULT_LINK_TITLE = "Source"

_NAME_RE = re.compile(r"^\s*Name:[ \t]*(.+)$", re.IGNORECASE | re.MULTILINE)
_TECH_RE = re.compile(r"^\s*Technology:[ \t]*(.+)$", re.IGNORECASE | re.MULTILINE)
_VERSION_RE = re.compile(r"^\s*Version:[ \t]*(.+)$", re.IGNORECASE | re.MULTILINE)
# Dependencies run to the end of the response and may span lines.
_DEPS_RE = re.compile(r"^\s*Dependencies:\s*(.+)\Z", re.IGNORECASE | re.MULTILINE | re.DOTALL)

# Checked in order: the first status with a matching marker wins.
_STATUS_MARKERS: list[tuple[RepoStatus, tuple[str, ...]]] = [
    (RepoStatus.CRITICAL, ("**overall status**: critical", "status: critical")),
    (RepoStatus.WARNING, ("**overall status**: warning", "status: warning")),
    (RepoStatus.SAFE, ("**overall status**: safe", "status: safe")),
]


class AnalysisFailure(UpstreamError):
    """Repository detail prefetch failed; callers fall back to manual entry."""


class ScanFailure(UpstreamError):
    """The assessment call failed during a scan."""


@dataclass
class RepositoryDetails:
    """Fields prefilled from a repository URL."""

    name: str = ""
    technology: str = ""
    version: str = DEFAULT_VERSION
    dependencies: str = ""


@dataclass
class ScanResult:
    """Outcome of one scan, folded into the Repository by the orchestrator."""

    status: RepoStatus
    report: str
    links: list[GroundingLink] = field(default_factory=list)


# ── parsing ──────────────────────────────────────────────────────────────────


def _first_group(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if match is None:
        return None
    return match.group(1).strip()


def parse_repository_details(text: str) -> RepositoryDetails:
    """Pull ``Name:``/``Technology:``/``Version:``/``Dependencies:`` out of *text*.

    Missing fields become empty strings, except the version, which defaults
    to ``"1.0.0"``.
    """
    return RepositoryDetails(
        name=_first_group(_NAME_RE, text) or "",
        technology=_first_group(_TECH_RE, text) or "",
        version=_first_group(_VERSION_RE, text) or DEFAULT_VERSION,
        dependencies=_first_group(_DEPS_RE, text) or "",
    )


def parse_scan_status(text: str) -> RepoStatus:
    """Infer the overall status of a free-text report.

    Precedence is critical > warning > safe. A report with no recognizable
    status line is treated as ``warning``: unparseable output is never
    reported as clean.
    """
    lowered = text.lower()
    for status, markers in _STATUS_MARKERS:
        if any(marker in lowered for marker in markers):
            return status
    return RepoStatus.WARNING


def extract_grounding_links(citations: list[Citation]) -> list[GroundingLink]:
    """Turn citations into links; citations without a URI are dropped."""
    return [
        GroundingLink(title=c.title or DEFAULT_LINK_TITLE, url=c.uri)
        for c in citations
        if c.uri
    ]


# ── client ───────────────────────────────────────────────────────────────────


class AssessmentClient:
    """Stateless gateway to the grounded generative model."""

    def __init__(self, llm: LLMClient, model: str | None = None) -> None:
        self._llm = llm
        self._model = model

    async def analyze(self, url: str) -> RepositoryDetails:
        """Prefill repository details for *url*.

        Raises :class:`AnalysisFailure` on an empty URL or any model error.
        """
        url = (url or "").strip()
        if not url:
            raise AnalysisFailure("repository url must not be empty")

        try:
            response = await self._llm.create(
                prompt=format_analyze_prompt(url),
                model=self._model,
                grounding=True,
            )
        except Exception as exc:
            log.warning("assessment.analyze_failed", url=url, error=str(exc))
            raise AnalysisFailure(f"could not analyze {url}: {exc}") from exc

        details = parse_repository_details(response.content)
        log.info(
            "assessment.analyzed",
            url=url,
            name=details.name,
            technology=details.technology,
            latency_ms=response.latency_ms,
        )
        return details

    async def scan(self, repo: Repository) -> ScanResult:
        """Run a vulnerability assessment for *repo*.

        Raises :class:`ScanFailure` on any model error.
        """
        try:
            response = await self._llm.create(
                prompt=format_scan_prompt(repo),
                model=self._model,
                grounding=True,
            )
        except Exception as exc:
            log.warning("assessment.scan_failed", repo_id=repo.id, error=str(exc))
            raise ScanFailure(f"scan of {repo.name or repo.url} failed: {exc}") from exc

        report = response.content or EMPTY_REPORT
        result = ScanResult(
            status=parse_scan_status(report),
            report=report,
            links=extract_grounding_links(response.citations),
        )
        log.info(
            "assessment.scanned",
            repo_id=repo.id,
            status=result.status.value,
            links=len(result.links),
            latency_ms=response.latency_ms,
        )
        return result
