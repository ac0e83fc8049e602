from typing import Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from profile_enrichment.core.exceptions import DatabaseError
from profile_enrichment.utils.logging import get_logger

ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Base repository for models keyed by a UUID `id`.

    SQLAlchemy failures are logged and re-raised as DatabaseError so services
    deal with a single storage error type.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session
            model: The SQLAlchemy model class this repository manages
        """
        self.session = session
        self.model = model
        self.logger = LOGGER

    def _storage_error(self, action: str, error: SQLAlchemyError) -> DatabaseError:
        self.logger.error(
            f"Error {action} {self.model.__name__}: {str(error)}",
            exc_info=True
        )
        return DatabaseError(f"Failed {action} {self.model.__name__}", original_error=error)

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        """Get a record by its ID, or None."""
        try:
            query = select(self.model).where(self.model.id == id)
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._storage_error("retrieving", e) from e

    async def exists(self, id: UUID) -> bool:
        try:
            query = select(func.count()).select_from(self.model).where(self.model.id == id)
            result = await self.session.execute(query)
            return result.scalar_one() > 0
        except SQLAlchemyError as e:
            raise self._storage_error("checking", e) from e
