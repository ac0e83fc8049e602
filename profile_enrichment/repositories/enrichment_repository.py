"""Repository for one-time enrichment results and their claims."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from profile_enrichment.database.models import EnrichmentResult
from profile_enrichment.repositories.base_repository import BaseRepository

STATUS_ENRICHING = "enriching"
STATUS_RELEASED = "released"
STATUS_COMPLETED = "completed"


class EnrichmentRepository(BaseRepository[EnrichmentResult]):
    """Persists enrichment results.

    A subject is claimed with a conditional write rather than a read-then-act
    flag check, so two concurrent enrich calls cannot both pass the guard.
    Claims expire after a lease so a crashed worker does not block forever.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, EnrichmentResult)

    async def get_by_subject(self, subject_id: uuid.UUID) -> Optional[EnrichmentResult]:
        try:
            query = select(EnrichmentResult).where(EnrichmentResult.subject_id == subject_id)
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._storage_error("retrieving", e) from e

    async def is_completed(self, subject_id: uuid.UUID) -> bool:
        record = await self.get_by_subject(subject_id)
        return bool(record and record.completed)

    async def claim(self, subject_id: uuid.UUID, lease_seconds: int) -> bool:
        """Atomically take the enrichment claim for a subject.

        Returns:
            True if this caller now holds the claim, False if the subject is
            completed or another live claim exists.
        """
        now = datetime.now(timezone.utc)
        lease_cutoff = now - timedelta(seconds=lease_seconds)

        try:
            insert_stmt = insert(EnrichmentResult).values(
                id=uuid.uuid4(),
                subject_id=subject_id,
                status=STATUS_ENRICHING,
                project_summaries=[],
                completed=False,
                claimed_at=now,
            ).on_conflict_do_nothing(index_elements=["subject_id"])
            result = await self.session.execute(insert_stmt)

            if result.rowcount == 1:
                await self.session.commit()
                return True

            # Row exists: take it over only if not completed and not live-claimed
            update_stmt = (
                update(EnrichmentResult)
                .where(
                    EnrichmentResult.subject_id == subject_id,
                    EnrichmentResult.completed.is_(False),
                    or_(
                        EnrichmentResult.status != STATUS_ENRICHING,
                        EnrichmentResult.claimed_at.is_(None),
                        EnrichmentResult.claimed_at < lease_cutoff,
                    ),
                )
                .values(status=STATUS_ENRICHING, claimed_at=now, updated_at=now)
            )
            result = await self.session.execute(update_stmt)
            await self.session.commit()
            return result.rowcount == 1
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._storage_error("claiming", e) from e

    async def complete(
        self,
        subject_id: uuid.UUID,
        bio: Optional[str],
        project_summaries: List[Dict[str, Any]],
        value_statement: Optional[str],
    ) -> EnrichmentResult:
        """Write the final result and set the completed flag."""
        now = datetime.now(timezone.utc)
        values = {
            "status": STATUS_COMPLETED,
            "bio": bio,
            "project_summaries": project_summaries,
            "value_statement": value_statement,
            "completed": True,
            "completed_at": now,
            "updated_at": now,
        }

        stmt = insert(EnrichmentResult).values(
            id=uuid.uuid4(), subject_id=subject_id, claimed_at=now, **values
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["subject_id"], set_=values
        ).returning(EnrichmentResult)

        try:
            result = await self.session.execute(
                stmt, execution_options={"populate_existing": True}
            )
            record = result.scalar_one()
            await self.session.commit()
            return record
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._storage_error("completing", e) from e

    async def release(self, subject_id: uuid.UUID) -> None:
        """Drop an unfinished claim so a later call can retry."""
        try:
            stmt = (
                update(EnrichmentResult)
                .where(
                    EnrichmentResult.subject_id == subject_id,
                    EnrichmentResult.completed.is_(False),
                )
                .values(status=STATUS_RELEASED, claimed_at=None)
            )
            await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._storage_error("releasing", e) from e
