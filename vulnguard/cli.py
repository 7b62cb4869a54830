"""CLI entry point: vulnguard.

Subcommands:
    vulnguard add https://github.com/org/repo --analyze   # Register (prefilled by the model)
    vulnguard list                                         # Show repositories and status
    vulnguard scan <repo-id>                               # Scan one repository
    vulnguard scan-all                                     # Scan every repository in order
    vulnguard remove <repo-id>                             # Forget a repository
    vulnguard settings --chat-webhook-url https://...      # Show or change remediation settings
    vulnguard serve --port 8000                            # Run the REST API
"""

from __future__ import annotations

import asyncio
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import click
import httpx
from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vulnguard.agent.llm_client import LLMClient
from vulnguard.core.database import create_engine, create_session_factory, create_tables
from vulnguard.core.logging import setup_logging
from vulnguard.dao.kv_dao import KVStoreDAO
from vulnguard.engines.assessment.client import AnalysisFailure, AssessmentClient, ScanFailure
from vulnguard.engines.remediation.dispatcher import RemediationDispatcher
from vulnguard.engines.scan.orchestrator import ScanOrchestrator
from vulnguard.models.repository import Repository
from vulnguard.services import NotFoundError
from vulnguard.services.repository_store import RepositoryStore

_STATUS_ICONS = {
    "unknown": "?",
    "scanning": "~",
    "safe": "+",
    "warning": "!",
    "critical": "x",
}


@dataclass
class _Runtime:
    session_factory: async_sessionmaker[AsyncSession]
    store: RepositoryStore
    assessment: AssessmentClient
    orchestrator: ScanOrchestrator


@asynccontextmanager
async def _runtime(database_url: str | None) -> AsyncIterator[_Runtime]:
    """Wire the store and engines for one command; waits for remediation on exit."""
    engine = create_engine(database_url)
    try:
        await create_tables(engine)
        factory = create_session_factory(engine)
        store = RepositoryStore(KVStoreDAO())
        assessment = AssessmentClient(LLMClient())
        timeout = float(os.environ.get("VULNGUARD_HTTP_TIMEOUT", "30"))
        async with httpx.AsyncClient(timeout=timeout) as http:
            dispatcher = RemediationDispatcher(http)
            try:
                yield _Runtime(
                    factory, store, assessment,
                    ScanOrchestrator(factory, store, assessment, dispatcher),
                )
            finally:
                await dispatcher.drain()
    finally:
        await engine.dispose()


def _mask(secret: str) -> str:
    if not secret:
        return "(not set)"
    return secret[:4] + "..." if len(secret) > 8 else "***"


def _echo_repository(repo: Repository) -> None:
    icon = _STATUS_ICONS.get(repo.status.value, " ")
    scanned = repo.last_scanned.isoformat(timespec="seconds") if repo.last_scanned else "never"
    click.echo(f"[{icon}] {repo.id}  {repo.name or '-'}  {repo.url}")
    click.echo(f"      {repo.technology or '?'} v{repo.version or '?'}  "
               f"status={repo.status.value}  last_scanned={scanned}")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.option(
    "--database-url",
    default=None,
    help="SQLAlchemy URL (default: $VULNGUARD_DATABASE_URL or ./vulnguard.db)",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, database_url: str | None) -> None:
    """VulnGuard: AI-assisted vulnerability monitoring for source repositories."""
    load_dotenv()
    setup_logging("DEBUG" if verbose else None)
    ctx.obj = {"database_url": database_url}


@main.command("list")
@click.pass_obj
def list_cmd(obj: dict) -> None:
    """List registered repositories."""

    async def _run() -> list[Repository]:
        async with _runtime(obj["database_url"]) as rt:
            async with rt.session_factory() as session:
                return await rt.store.list_repositories(session)

    repos = asyncio.run(_run())
    if not repos:
        click.echo("No repositories registered.")
        return
    for repo in repos:
        _echo_repository(repo)


@main.command("add")
@click.argument("url")
@click.option("--name", default="", help="Display name")
@click.option("--technology", default="", help="Primary language/framework")
@click.option("--version", "version_", default="", help="Version string")
@click.option("--dependencies", default="", help="Dependency summary")
@click.option("--analyze", is_flag=True, help="Prefill empty fields with the AI model")
@click.pass_obj
def add_cmd(
    obj: dict,
    url: str,
    name: str,
    technology: str,
    version_: str,
    dependencies: str,
    analyze: bool,
) -> None:
    """Register a repository by URL."""

    async def _run() -> Repository:
        async with _runtime(obj["database_url"]) as rt:
            fields = {
                "name": name,
                "technology": technology,
                "version": version_,
                "dependencies": dependencies,
            }
            if analyze:
                try:
                    details = await rt.assessment.analyze(url)
                except AnalysisFailure:
                    click.echo(
                        "Warning: automatic analysis failed, using the values given.", err=True
                    )
                else:
                    suggested = {
                        "name": details.name,
                        "technology": details.technology,
                        "version": details.version,
                        "dependencies": details.dependencies,
                    }
                    fields = {k: v or suggested[k] for k, v in fields.items()}

            repo = Repository(url=url.strip(), **fields)
            async with rt.session_factory() as session:
                async with session.begin():
                    await rt.store.upsert_repository(session, repo)
            return repo

    if not url.strip():
        click.echo("Error: url must not be empty", err=True)
        sys.exit(1)
    repo = asyncio.run(_run())
    click.echo(f"Registered {repo.name or repo.url} as {repo.id}")


@main.command("remove")
@click.argument("repo_id")
@click.pass_obj
def remove_cmd(obj: dict, repo_id: str) -> None:
    """Remove a repository (no-op if it does not exist)."""

    async def _run() -> None:
        async with _runtime(obj["database_url"]) as rt:
            async with rt.session_factory() as session:
                async with session.begin():
                    await rt.store.delete_repository(session, repo_id)

    asyncio.run(_run())
    click.echo(f"Removed {repo_id}")


@main.command("scan")
@click.argument("repo_id")
@click.option("--report/--no-report", default=True, help="Print the full report")
@click.pass_obj
def scan_cmd(obj: dict, repo_id: str, report: bool) -> None:
    """Scan one repository and print the result."""

    async def _run() -> Repository:
        async with _runtime(obj["database_url"]) as rt:
            return await rt.orchestrator.run_scan_by_id(repo_id)

    try:
        repo = asyncio.run(_run())
    except NotFoundError:
        click.echo(f"Error: repository {repo_id} not found", err=True)
        sys.exit(1)
    except ScanFailure:
        click.echo("Scan failed. Please check your API Key and internet connection.", err=True)
        sys.exit(1)

    _echo_repository(repo)
    if report and repo.last_report:
        click.echo("")
        click.echo(repo.last_report)
    if repo.grounding_links:
        click.echo("\nSources:")
        for link in repo.grounding_links:
            click.echo(f"  - {link.title}: {link.url}")
    if repo.fix_delegated_at:
        click.echo(f"\nRemediation requested at {repo.fix_delegated_at.isoformat(timespec='seconds')}")


@main.command("scan-all")
@click.pass_obj
def scan_all_cmd(obj: dict) -> None:
    """Scan every repository, one at a time."""

    async def _run():
        async with _runtime(obj["database_url"]) as rt:
            return await rt.orchestrator.run_scan_all()

    summary = asyncio.run(_run())
    for repo in summary.results:
        _echo_repository(repo)
    click.echo(f"\nScanned: {summary.scanned}  Failed: {len(summary.failed)}")
    for repo_id in summary.failed:
        click.echo(f"  failed: {repo_id}", err=True)


@main.command("settings")
@click.option("--jules-api-key", default=None, help="Remediation API key ('' to clear)")
@click.option("--chat-webhook-url", default=None, help="Chat webhook URL ('' to clear)")
@click.option("--backend-url", default=None, help="Remediation backend URL ('' to clear)")
@click.pass_obj
def settings_cmd(
    obj: dict,
    jules_api_key: str | None,
    chat_webhook_url: str | None,
    backend_url: str | None,
) -> None:
    """Show remediation settings, or change the ones given."""
    updates = {
        k: v
        for k, v in {
            "jules_api_key": jules_api_key,
            "chat_webhook_url": chat_webhook_url,
            "backend_url": backend_url,
        }.items()
        if v is not None
    }

    async def _run():
        async with _runtime(obj["database_url"]) as rt:
            async with rt.session_factory() as session:
                async with session.begin():
                    current = await rt.store.get_settings(session)
                    if not updates:
                        return current
                    return await rt.store.save_settings(
                        session, current.model_copy(update=updates)
                    )

    settings = asyncio.run(_run())
    click.echo(f"Jules API key:    {_mask(settings.jules_api_key)}")
    click.echo(f"Chat webhook URL: {settings.chat_webhook_url or '(not set)'}")
    click.echo(f"Backend URL:      {settings.backend_url or '(not set)'}")


@main.command("serve")
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8000, type=int, help="Bind port")
@click.pass_obj
def serve_cmd(obj: dict, host: str, port: int) -> None:
    """Run the REST API with uvicorn."""
    import uvicorn

    if obj["database_url"]:
        os.environ["VULNGUARD_DATABASE_URL"] = obj["database_url"]
    uvicorn.run("vulnguard.api:create_app", factory=True, host=host, port=port, log_config=None)
