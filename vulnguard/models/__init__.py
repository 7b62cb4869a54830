"""Persistence models — the ORM table plus the JSON documents stored in it."""

from vulnguard.models.kv_entry import KVEntry
from vulnguard.models.repository import GroundingLink, RepoStatus, Repository
from vulnguard.models.settings import AppSettings

__all__ = [
    "AppSettings",
    "GroundingLink",
    "KVEntry",
    "RepoStatus",
    "Repository",
]
