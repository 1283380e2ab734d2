# homefinder/models.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class CacheEntry(Base):
    """
    Backing row for CACHE_BACKEND=sqlite. The blob is the full
    {timestamp, data} envelope written by TtlCache; `updated_at` is bookkeeping
    only and never consulted for expiry.
    """

    __tablename__ = "cache_entries"
    __table_args__ = (UniqueConstraint("namespace", "key", name="uq_cache_entries_namespace_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    namespace: Mapped[str] = mapped_column(String(64), index=True)
    key: Mapped[str] = mapped_column(String(128))
    blob: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
