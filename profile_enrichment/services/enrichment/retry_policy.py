import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from profile_enrichment.core.exceptions import GenerationFailedError, GenerationServiceError
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Retries a generation call on rate-limit and timeout codes only.

    Waits backoff_base ** attempt seconds after failed attempt N (1-based),
    so three attempts sleep 2s then 4s. Any other error fails immediately.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        backoff_base: float = 2.0,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self.sleep = sleep or asyncio.sleep

    def delay_for(self, attempt: int) -> float:
        return self.backoff_base ** attempt

    async def run(self, operation: Callable[[], Awaitable[T]], label: str = "generation") -> T:
        """Await operation until it succeeds or retries are exhausted.

        Raises:
            GenerationFailedError: On a non-retryable error or after the last attempt
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()

            except GenerationServiceError as e:
                if not e.retryable:
                    LOGGER.warning(
                        f"{label} failed with non-retryable error",
                        extra={"attempt": attempt, "code": e.code.value}
                    )
                    raise GenerationFailedError(
                        f"{label} failed: {e}", attempts=attempt, original_error=e
                    ) from e

                if attempt == self.max_attempts:
                    LOGGER.warning(
                        f"{label} exhausted {self.max_attempts} attempts",
                        extra={"code": e.code.value}
                    )
                    raise GenerationFailedError(
                        f"{label} failed after {attempt} attempts: {e}",
                        attempts=attempt,
                        original_error=e,
                    ) from e

                delay = self.delay_for(attempt)
                LOGGER.info(
                    f"{label} hit {e.code.value}, retrying in {delay:.0f}s "
                    f"(Attempt {attempt}/{self.max_attempts})"
                )
                await self.sleep(delay)

        # max_attempts >= 1 means the loop always returns or raises
        raise GenerationFailedError(f"{label} failed", attempts=self.max_attempts)
