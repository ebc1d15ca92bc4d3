from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import TransportError
from app.models.weather import WeatherRecord, utcnow


class WeatherRepository:
    """
    Repository for managing weather record persistence.

    This repository encapsulates all database operations related to
    `WeatherRecord` entities. Missing rows are reported as `None`;
    storage failures are raised as `TransportError`.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with an active database session.

        Args:
            db: Asynchronous SQLAlchemy session.
        """
        self.db = db

    async def find_all(self) -> List[WeatherRecord]:
        """
        Return every stored record, most recently fetched first.
        """
        stmt = select(WeatherRecord).order_by(
            WeatherRecord.fetched_at.desc(),
            WeatherRecord.created_at.desc(),
        )
        try:
            res = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise TransportError("Failed to query weather records") from exc
        return list(res.scalars().all())

    async def find_by_id(self, record_id: str) -> Optional[WeatherRecord]:
        """
        Return a record by its id, or None if not found.
        """
        stmt = select(WeatherRecord).where(WeatherRecord.id == record_id)
        try:
            res = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise TransportError("Failed to query weather record") from exc
        return res.scalar_one_or_none()

    async def find_latest_by_city(self, city_name: str) -> Optional[WeatherRecord]:
        """
        Retrieve the most recently fetched record for a city.

        The city match is case-insensitive, mirroring the case folding
        of the cache keys.

        Args:
            city_name: City to look up.

        Returns:
            The record with the greatest `fetched_at`, otherwise `None`.
        """
        stmt = (
            select(WeatherRecord)
            .where(func.lower(WeatherRecord.city_name) == city_name.lower())
            .order_by(WeatherRecord.fetched_at.desc())
            .limit(1)
        )
        try:
            res = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise TransportError("Failed to query latest weather record") from exc
        return res.scalars().first()

    async def save(self, record: WeatherRecord) -> WeatherRecord:
        """
        Insert or update a record and commit.

        Args:
            record: New or already persistent `WeatherRecord`.

        Returns:
            The persisted record, with id and timestamps populated.
        """
        now = utcnow()
        if record.created_at is None:
            record.created_at = now
        record.updated_at = now

        self.db.add(record)
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise TransportError("Failed to save weather record") from exc
        return record

    async def remove(self, record: WeatherRecord) -> None:
        """
        Delete a record and commit.
        """
        try:
            await self.db.delete(record)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise TransportError("Failed to delete weather record") from exc
