"""Repository for per-source raw profile payloads."""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from profile_enrichment.database.models import RawDataRecord, Subject
from profile_enrichment.models.profile import DataSource, QUALIFYING_SOURCES
from profile_enrichment.repositories.base_repository import BaseRepository


class RawDataRepository(BaseRepository[RawDataRecord]):
    """Stores one payload per (subject, source) with last-write-wins semantics."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, RawDataRecord)

    async def upsert(
        self,
        subject_id: uuid.UUID,
        source: Union[DataSource, str],
        data: Dict[str, Any],
    ) -> RawDataRecord:
        """Insert or wholesale-replace the record for (subject_id, source).

        created_at survives a replace; updated_at is bumped.
        """
        source_key = DataSource(source).value
        now = datetime.now(timezone.utc)

        stmt = insert(RawDataRecord).values(
            id=uuid.uuid4(),
            subject_id=subject_id,
            source=source_key,
            data=data,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_raw_data_subject_source",
            set_={"data": stmt.excluded.data, "updated_at": now},
        ).returning(RawDataRecord)

        try:
            result = await self.session.execute(
                stmt, execution_options={"populate_existing": True}
            )
            record = result.scalar_one()
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._storage_error("upserting", e) from e

        self.logger.info(
            "Stored raw data record",
            extra={"subject_id": str(subject_id), "source": source_key}
        )
        return record

    async def list_by_subject(
        self, subject_id: uuid.UUID, include_merged: bool = True
    ) -> List[RawDataRecord]:
        """All records for a subject, oldest first."""
        try:
            query = select(RawDataRecord).where(RawDataRecord.subject_id == subject_id)
            if not include_merged:
                query = query.where(RawDataRecord.source != DataSource.MERGED.value)
            query = query.order_by(RawDataRecord.created_at)
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._storage_error("listing", e) from e

    async def get(
        self, subject_id: uuid.UUID, source: Union[DataSource, str]
    ) -> Optional[RawDataRecord]:
        try:
            query = select(RawDataRecord).where(
                RawDataRecord.subject_id == subject_id,
                RawDataRecord.source == DataSource(source).value,
            )
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._storage_error("retrieving", e) from e

    async def has_any(self, subject_id: uuid.UUID) -> bool:
        """Whether any ingested (non-merged) record exists for the subject."""
        try:
            query = select(func.count()).select_from(RawDataRecord).where(
                RawDataRecord.subject_id == subject_id,
                RawDataRecord.source != DataSource.MERGED.value,
            )
            result = await self.session.execute(query)
            return result.scalar_one() > 0
        except SQLAlchemyError as e:
            raise self._storage_error("counting", e) from e

    async def has_qualifying_source(self, subject_id: uuid.UUID) -> bool:
        """Whether a document or code-hosting record exists, or the legacy column is set.

        Manual and professional-network data alone never qualify.
        """
        try:
            query = select(func.count()).select_from(RawDataRecord).where(
                RawDataRecord.subject_id == subject_id,
                RawDataRecord.source.in_([source.value for source in QUALIFYING_SOURCES]),
            )
            result = await self.session.execute(query)
            if result.scalar_one() > 0:
                return True

            legacy_query = select(Subject.legacy_provider_b_data).where(Subject.id == subject_id)
            legacy_result = await self.session.execute(legacy_query)
            return bool(legacy_result.scalar_one_or_none())
        except SQLAlchemyError as e:
            raise self._storage_error("checking sources for", e) from e

    async def get_available_sources(self, subject_id: uuid.UUID) -> List[str]:
        """Source keys that hold ingested data for the subject."""
        try:
            query = (
                select(RawDataRecord.source)
                .where(
                    RawDataRecord.subject_id == subject_id,
                    RawDataRecord.source != DataSource.MERGED.value,
                )
                .order_by(RawDataRecord.source)
            )
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._storage_error("listing sources for", e) from e

    async def delete_by_subject_and_source(
        self, subject_id: uuid.UUID, source: Union[DataSource, str]
    ) -> bool:
        try:
            stmt = delete(RawDataRecord).where(
                RawDataRecord.subject_id == subject_id,
                RawDataRecord.source == DataSource(source).value,
            )
            result = await self.session.execute(stmt)
            await self.session.commit()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._storage_error("deleting", e) from e
