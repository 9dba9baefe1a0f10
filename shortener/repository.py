"""Link store facade.

``LinkRepository`` is the only module that talks to the database. It opens a
short-lived session per operation from its own session factory, so callers
(request handlers and background click increments alike) never share a
session.

Error Classification
====================
::
    SQLAlchemy / driver error
           │
           ▼
    ┌──────────────────┐  unique violation   ┌────────────────────┐
    │ IntegrityError?  │ ──────────────────▶ │ UniquenessConflict │
    └────────┬─────────┘                     └────────────────────┘
             │ anything else
             ▼
    ┌──────────────────┐
    │   StorageError   │
    └──────────────────┘

Key Behaviours
===============
- Unique violations are recognised by PostgreSQL SQLSTATE ``23505`` or
  SQLite's ``SQLITE_CONSTRAINT_UNIQUE``.
- ``get_by_code`` raises ``NotFound`` rather than returning ``None``.
- ``increment_click`` is a single ``UPDATE`` whose target row is selected
  ``FOR UPDATE``; concurrent increments on one row serialise in the store.
- Nothing here retries; callers decide.
"""

import logging

from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from shortener.database import Base, build_session_factory
from shortener.errors import NotFound, StorageError, UniquenessConflict
from shortener.models import Link

__all__ = ["LinkRepository", "is_unique_violation"]

logger = logging.getLogger("shortener.repository")

PG_UNIQUE_VIOLATION = "23505"
SQLITE_UNIQUE_VIOLATION = "SQLITE_CONSTRAINT_UNIQUE"


def is_unique_violation(exc: IntegrityError) -> bool:
    """Tell a unique-index violation apart from other integrity errors."""
    orig = exc.orig
    candidates = [orig, getattr(orig, "__cause__", None)]
    for candidate in candidates:
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code == PG_UNIQUE_VIOLATION:
            return True
        if getattr(candidate, "sqlite_errorname", None) == SQLITE_UNIQUE_VIOLATION:
            return True
    return "UNIQUE constraint failed" in str(orig)


class LinkRepository:
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory = build_session_factory(engine)

    async def migrate(self) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(f"schema migration failed: {exc}") from exc

    async def create(self, link: Link) -> Link:
        """Insert a new link and return it with store-assigned fields loaded.

        Raises:
            UniquenessConflict: If ``link.short_code`` is already taken.
            StorageError: On any other store failure.
        """
        async with self._session_factory() as session:
            try:
                session.add(link)
                await session.commit()
                await session.refresh(link)
            except IntegrityError as exc:
                await session.rollback()
                if is_unique_violation(exc):
                    raise UniquenessConflict(link.short_code) from exc
                raise StorageError(f"failed to store link: {exc}") from exc
            except (SQLAlchemyError, OSError) as exc:
                await session.rollback()
                raise StorageError(f"failed to store link: {exc}") from exc
        return link

    async def get_by_code(self, short_code: str) -> Link:
        async with self._session_factory() as session:
            try:
                result = await session.execute(select(Link).where(Link.short_code == short_code))
                link = result.scalar_one_or_none()
            except (SQLAlchemyError, OSError) as exc:
                raise StorageError(f"failed to look up '{short_code}': {exc}") from exc

        if link is None:
            raise NotFound(short_code)
        return link

    async def increment_click(self, link_id: int) -> None:
        locked_row = select(Link.id).where(Link.id == link_id).with_for_update()
        statement = (
            update(Link)
            .where(Link.id.in_(locked_row))
            .values(click_count=Link.click_count + 1)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            try:
                result = await session.execute(statement)
                matched = result.rowcount
                await session.commit()
            except (SQLAlchemyError, OSError) as exc:
                await session.rollback()
                raise StorageError(f"failed to increment clicks for link {link_id}: {exc}") from exc

        if matched == 0:
            logger.debug("Click increment matched no rows for link %s", link_id)

    async def ping(self) -> None:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(f"database unreachable: {exc}") from exc
