"""Thin async wrapper around litellm.acompletion() with search grounding."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any

import litellm

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini/gemini-3-pro-preview"

# Gemini's built-in Google Search tool. Providers that support it forbid
# structured output (response_format) in the same request.
GOOGLE_SEARCH_TOOL: dict[str, Any] = {"googleSearch": {}}


# ── LLM Response ─────────────────────────────────────────────────────────────
@dataclass
class Citation:
    """A web source attached to a grounded response."""

    uri: str | None = None
    title: str | None = None


@dataclass
class LLMResponse:
    """Standardised response from a single LLM call."""

    content: str = ""
    citations: list[Citation] = field(default_factory=list)
    stop_reason: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: int = 0


def extract_citations(raw: Any) -> list[Citation]:
    """Collect ``groundingChunks[].web`` entries from a litellm response.

    litellm exposes Gemini grounding metadata as a list of dicts on
    ``vertex_ai_grounding_metadata``; responses without grounding yield [].
    """
    metadata = getattr(raw, "vertex_ai_grounding_metadata", None) or []
    if isinstance(metadata, dict):
        metadata = [metadata]

    citations: list[Citation] = []
    for block in metadata:
        if not isinstance(block, dict):
            continue
        for chunk in block.get("groundingChunks") or []:
            web = chunk.get("web") if isinstance(chunk, dict) else None
            if not web:
                continue
            citations.append(Citation(uri=web.get("uri"), title=web.get("title")))
    return citations


# ── LLM Client ───────────────────────────────────────────────────────────────
class LLMClient:
    """Async-only wrapper around ``litellm.acompletion()``.

    Usage::

        client = LLMClient()
        resp = await client.create(prompt="...", grounding=True)
        resp.content, resp.citations
    """

    def __init__(self, model: str | None = None, api_key: str | None = None) -> None:
        self.model = model or os.environ.get("VULNGUARD_MODEL", DEFAULT_MODEL)
        self._api_key = (
            api_key
            or os.environ.get("VULNGUARD_AI_API_KEY")
            or os.environ.get("GEMINI_API_KEY")
        )

    async def create(
        self,
        *,
        prompt: str,
        model: str | None = None,
        grounding: bool = False,
    ) -> LLMResponse:
        """Send a single-turn prompt and return a standardised response.

        Transport, auth, and quota errors from litellm propagate unchanged.
        """
        kwargs: dict[str, Any] = {
            "model": model or self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if grounding:
            kwargs["tools"] = [GOOGLE_SEARCH_TOOL]
        if self._api_key:
            kwargs["api_key"] = self._api_key

        logger.debug("LLM request model=%s grounding=%s", kwargs["model"], grounding)

        t0 = time.monotonic()
        raw = await litellm.acompletion(**kwargs)
        latency_ms = int((time.monotonic() - t0) * 1000)

        choice = raw.choices[0]
        usage = getattr(raw, "usage", None) or litellm.Usage()

        return LLMResponse(
            content=choice.message.content or "",
            citations=extract_citations(raw),
            stop_reason=choice.finish_reason or "",
            input_tokens=usage.prompt_tokens or 0,
            output_tokens=usage.completion_tokens or 0,
            latency_ms=latency_ms,
        )
