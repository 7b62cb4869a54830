"""Chat card and payload rendering for remediation notifications."""

from __future__ import annotations

from typing import Any

from vulnguard.models.repository import Repository
from vulnguard.models.settings import AppSettings

CARD_TITLE = "🚨 Security Vulnerability Detected"
CARD_IMAGE_URL = "https://www.gstatic.com/images/branding/product/2x/google_cloud_48dp.png"


def render_chat_card(repo: Repository) -> dict[str, Any]:
    """Return a Google Chat ``cards`` payload announcing findings for *repo*."""
    summary = (
        f"<b>Critical issues found in {_esc(repo.technology)} v{_esc(repo.version)}</b>."
        "<br>A fix has been requested via Google Jules."
    )
    return {
        "cards": [
            {
                "header": {
                    "title": CARD_TITLE,
                    "subtitle": f"Project: {repo.name}",
                    "imageUrl": CARD_IMAGE_URL,
                    "imageStyle": "IMAGE",
                },
                "sections": [
                    {
                        "widgets": [
                            {"textParagraph": {"text": summary}},
                            {
                                "buttons": [
                                    {
                                        "textButton": {
                                            "text": "View Repository",
                                            "onClick": {"openLink": {"url": repo.url}},
                                        }
                                    }
                                ]
                            },
                        ]
                    }
                ],
            }
        ]
    }


def render_fix_request(repo: Repository, report: str) -> dict[str, Any]:
    """Return the body of a fix (pull request) request for the remediation API."""
    return {
        "repositoryUrl": repo.url,
        "issueDescription": report,
        "action": "create_pull_request",
        "context": {
            "technology": repo.technology,
            "dependencies": repo.dependencies,
        },
    }


def render_backend_payload(
    repo: Repository, report: str, settings: AppSettings
) -> dict[str, Any]:
    """Return the ``{repo, report, config}`` body posted to the remediation backend."""
    return {
        "repo": repo.to_document(),
        "report": report,
        "config": {
            "julesApiKey": settings.jules_api_key,
            "chatWebhookUrl": settings.chat_webhook_url,
        },
    }


def _esc(text: str) -> str:
    """Minimal HTML escaping (Chat text paragraphs accept simple HTML)."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
