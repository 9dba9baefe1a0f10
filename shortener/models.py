"""SQLAlchemy ORM models for the link shortener.

Data Model Layout
=================
::
    links table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ short_code (VARCHAR(5) UNIQUE, INDEXED)
    ├─ original_url (TEXT NOT NULL)
    ├─ created_at (TIMESTAMPTZ, DEFAULT NOW())
    ├─ updated_at (TIMESTAMPTZ, DEFAULT NOW(), ON UPDATE)
    ├─ expires_at (TIMESTAMPTZ NULL)
    └─ click_count (BIGINT NOT NULL DEFAULT 0)

Key Behaviours
===============
- short_code is the only lookup key on the redirect path; the unique index
  is what guarantees code uniqueness, there is no in-process registry.
- expires_at is written once at creation; a NULL value never expires.
- click_count is only ever changed by ``LinkRepository.increment_click``.

Classes:
    Link:  A shortened URL mapping with optional expiry and click counter.
"""

import datetime

from sqlalchemy import BigInteger, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from shortener.allocator import SHORT_CODE_LENGTH
from shortener.database import Base

__all__ = ["Link"]


class Link(Base):
    __tablename__ = "links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    short_code: Mapped[str] = mapped_column(String(SHORT_CODE_LENGTH), unique=True, index=True, nullable=False)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
    expires_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    click_count: Mapped[int] = mapped_column(
        BigInteger, default=0, server_default="0", nullable=False
    )

    def is_expired(self, now: datetime.datetime) -> bool:
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        # SQLite hands back naive datetimes; everything is stored as UTC.
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=datetime.timezone.utc)
        return now > expires_at

    def __repr__(self) -> str:
        return f"<Link(id={self.id}, short_code='{self.short_code}', click_count={self.click_count})>"
