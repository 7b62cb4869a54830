"""Repository document — one monitored source repository.

Stored as a JSON object (camelCase keys) inside the repository list entry of
the key-value store.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RepoStatus(str, enum.Enum):
    UNKNOWN = "unknown"
    SCANNING = "scanning"
    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"


# Statuses that warrant a remediation request.
ACTIONABLE_STATUSES = frozenset({RepoStatus.WARNING, RepoStatus.CRITICAL})


def new_repository_id() -> str:
    return uuid.uuid4().hex


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-serializable, camelCase form used for storage and the wire."""
        return self.model_dump(mode="json", by_alias=True)


class GroundingLink(_Document):
    """A web source the model cited while producing a report."""

    title: str
    url: str


class Repository(_Document):
    """A monitored repository and the outcome of its latest scan.

    ``last_report`` and ``grounding_links`` are only written together, by a
    completed scan. A repository in ``scanning`` state keeps the report of
    the previous scan.
    """

    id: str = Field(default_factory=new_repository_id)
    name: str = ""
    url: str
    technology: str = ""
    version: str = ""
    dependencies: str = ""
    status: RepoStatus = RepoStatus.UNKNOWN
    last_report: str | None = None
    grounding_links: list[GroundingLink] = Field(default_factory=list)
    last_scanned: datetime | None = None
    fix_delegated_at: datetime | None = None

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> Repository:
        return cls.model_validate(data)
