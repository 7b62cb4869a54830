"""AppSettings document — the single process-wide remediation settings record."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class AppSettings(BaseModel):
    """Remediation settings. An empty string means "not configured"."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    jules_api_key: str = ""
    chat_webhook_url: str = ""
    backend_url: str = ""

    @property
    def remediation_configured(self) -> bool:
        return bool(self.jules_api_key or self.chat_webhook_url or self.backend_url)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, data: dict[str, Any] | None) -> AppSettings:
        return cls.model_validate(data or {})
