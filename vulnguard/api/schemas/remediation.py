"""Remediation endpoint schemas (wire format of the remediation backend)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RemediationConfig(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    jules_api_key: str = ""
    chat_webhook_url: str = ""


class RemediateRequest(BaseModel):
    # Left loose so a missing repo/config is answered with 400, not 422.
    repo: dict[str, Any] | None = None
    report: str = ""
    config: RemediationConfig | None = None


class RemediateResponse(BaseModel):
    success: bool
    message: str
    errors: list[str] | None = None
