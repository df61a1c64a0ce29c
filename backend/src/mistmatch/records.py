"""Record store access for user profiles.

Defines the query/mutation contract the console depends on and the
PostgreSQL implementation used in production.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .db import get_db_session
from .logging import get_context_logger
from .review.models import UserRecord, VerificationStatus

logger = get_context_logger(__name__)

USER_COLUMNS = (
    "id, name, age, gender, country, image_urls, "
    "verification_photo_url, is_verified, created_at"
)


class RecordNotFoundError(LookupError):
    """Raised when an update matches no user record."""


class RecordSource(ABC):
    """Queryable store of user records."""

    @abstractmethod
    async def fetch_pending(self) -> list[UserRecord]:
        """Records with status pending, newest first."""
        ...

    @abstractmethod
    async def count_pending(self) -> int:
        """Exact number of pending records."""
        ...

    @abstractmethod
    async def fetch_all(self) -> list[UserRecord]:
        """Every record, newest first."""
        ...

    @abstractmethod
    async def count_unknown_gender(self) -> int:
        """Number of records with no gender recorded."""
        ...

    @abstractmethod
    async def set_verification_status(self, user_id: str, status: VerificationStatus) -> None:
        """Update the verification status of one record."""
        ...

    @abstractmethod
    async def set_gender(self, user_id: str, gender: str) -> None:
        """Update the gender of one record."""
        ...


class SqlRecordSource(RecordSource):
    """RecordSource backed by the PostgreSQL `users` table."""

    def __init__(self, db_session: AsyncSession | None = None, table: str | None = None):
        """Initialize the source.

        Args:
            db_session: Optional session to reuse instead of opening one per call
            table: Table name override (defaults to settings.users_table)
        """
        self._db_session = db_session
        self._table = table or get_settings().users_table

    @asynccontextmanager
    async def _get_session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._db_session is not None:
            yield self._db_session
            return
        async with get_db_session() as session:
            yield session

    async def _select(self, where: str = "", params: dict | None = None) -> list[UserRecord]:
        query = f"SELECT {USER_COLUMNS} FROM {self._table}"
        if where:
            query += f" WHERE {where}"
        query += " ORDER BY created_at DESC"

        async with self._get_session() as session:
            result = await session.execute(text(query), params or {})
            rows = result.mappings().all()

        return [UserRecord.model_validate(dict(row)) for row in rows]

    async def _count(self, where: str, params: dict | None = None) -> int:
        async with self._get_session() as session:
            result = await session.execute(
                text(f"SELECT COUNT(*) FROM {self._table} WHERE {where}"),
                params or {},
            )
            return result.scalar() or 0

    async def _update(self, user_id: str, column: str, value: str) -> None:
        async with self._get_session() as session:
            result = await session.execute(
                text(f"UPDATE {self._table} SET {column} = :value WHERE id = :id"),
                {"id": user_id, "value": value},
            )
            await session.commit()

        if result.rowcount == 0:
            raise RecordNotFoundError(f"User {user_id} not found")
        logger.debug(f"Updated {column} for user {user_id}")

    async def fetch_pending(self) -> list[UserRecord]:
        return await self._select(
            "is_verified = :status", {"status": VerificationStatus.PENDING.value}
        )

    async def count_pending(self) -> int:
        return await self._count(
            "is_verified = :status", {"status": VerificationStatus.PENDING.value}
        )

    async def fetch_all(self) -> list[UserRecord]:
        return await self._select()

    async def count_unknown_gender(self) -> int:
        return await self._count("gender IS NULL OR LOWER(TRIM(gender)) IN ('', 'unknown')")

    async def set_verification_status(self, user_id: str, status: VerificationStatus) -> None:
        await self._update(user_id, "is_verified", VerificationStatus(status).value)

    async def set_gender(self, user_id: str, gender: str) -> None:
        await self._update(user_id, "gender", gender)


# Singleton instance
_source: SqlRecordSource | None = None


def get_record_source() -> SqlRecordSource:
    """Get the record source singleton."""
    global _source
    if _source is None:
        _source = SqlRecordSource()
    return _source
