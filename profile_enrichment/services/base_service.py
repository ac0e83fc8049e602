import time
import uuid
from abc import ABC, abstractmethod
from typing import Any

from profile_enrichment.core.exceptions import AppError, ValidationError
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BaseService(ABC):
    """Base class for subject-scoped services.

    `execute` validates the subject id, runs the service and turns anything
    that is not an AppError into one, so routes only map AppError subclasses.
    """

    def __init__(self):
        self.logger = LOGGER

    async def execute(self, subject_id: uuid.UUID, *args, **kwargs) -> Any:
        self.validate(subject_id, *args, **kwargs)

        start_time = time.perf_counter()
        try:
            return await self.run(subject_id, *args, **kwargs)

        except AppError:
            raise

        except Exception as e:
            self.logger.error(
                f"Service execution failed: {str(e)}",
                exc_info=True,
                extra={"service": self.__class__.__name__, "subject_id": str(subject_id)}
            )
            raise AppError(f"Service execution failed: {str(e)}", original_error=e) from e

        finally:
            self.logger.debug(
                f"{self.__class__.__name__} finished in {time.perf_counter() - start_time:.2f}s",
                extra={"subject_id": str(subject_id)}
            )

    def validate(self, subject_id: Any, *args, **kwargs) -> None:
        """Reject calls without a subject UUID.

        Raises:
            ValidationError: If subject_id is not a UUID
        """
        if not isinstance(subject_id, uuid.UUID):
            raise ValidationError(f"Invalid subject id: {subject_id!r}")

    @abstractmethod
    async def run(self, subject_id: uuid.UUID, *args, **kwargs) -> Any:
        """Run the core service logic."""
        pass
