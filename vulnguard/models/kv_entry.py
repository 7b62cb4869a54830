"""kv_entries table — the durable key-value store."""

from typing import Any

from sqlalchemy import JSON, Text
from sqlalchemy.orm import Mapped, mapped_column

from vulnguard.core.database import Base, TimestampMixin


class KVEntry(TimestampMixin, Base):
    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
