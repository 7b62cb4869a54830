"""Repository request/response schemas.

Responses reuse :class:`vulnguard.models.repository.Repository` directly; it
serializes to the same camelCase document the store holds.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateRepositoryRequest(_CamelModel):
    url: str
    name: str = ""
    technology: str = ""
    version: str = ""
    dependencies: str = ""

    @field_validator("url", "name", "technology", "version", mode="before")
    @classmethod
    def _strip_whitespace(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v

    @field_validator("url")
    @classmethod
    def _require_url(cls, v: str) -> str:
        if not v:
            raise ValueError("url must not be empty")
        return v


class UpdateRepositoryRequest(_CamelModel):
    """Metadata edit. Scan fields (status, report, links) are not editable."""

    url: str | None = None
    name: str | None = None
    technology: str | None = None
    version: str | None = None
    dependencies: str | None = None

    @field_validator("url", "name", "technology", "version", mode="before")
    @classmethod
    def _strip_whitespace(cls, v: str | None) -> str | None:
        return v.strip() if isinstance(v, str) else v


class AnalyzeRequest(BaseModel):
    url: str


class AnalyzeResponse(_CamelModel):
    name: str
    technology: str
    version: str
    dependencies: str


class ScanAllAccepted(BaseModel):
    status: str = "accepted"
    queued: int
