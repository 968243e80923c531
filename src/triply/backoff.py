"""Retry with exponential backoff for single asynchronous service calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from pydantic import BaseModel, Field

from .errors import ExhaustedRetriesError, NetworkError, SchemaError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (NetworkError, SchemaError)


class RetryPolicy(BaseModel):
    """Attempt budget and deterministic backoff schedule.

    Args:
        max_attempts: Maximum number of attempts, including the first call.
        base_delay_s: Delay before the first retry; doubles for every retry after.
    """

    model_config = {"frozen": True}

    max_attempts: int = Field(default=3, ge=1)
    base_delay_s: float = Field(default=0.1, ge=0.0)

    def compute_delay(self, retry: int) -> float:
        """Delay in seconds before the given retry (1 = first retry)."""
        return self.base_delay_s * (2 ** (retry - 1))


async def run_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    stage: str,
    retry_on: tuple[type[BaseException], ...] = RETRYABLE_ERRORS,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """
    Await ``operation()`` until it succeeds or the policy's attempts run out.

    Errors outside ``retry_on`` propagate unchanged on the attempt that raised
    them. When every attempt fails, ExhaustedRetriesError is raised from the
    last attempt's error.
    """
    last_error: BaseException | None = None
    for attempt in range(1, policy.max_attempts + 1):
        if attempt > 1:
            await sleep(policy.compute_delay(attempt - 1))
        try:
            return await operation()
        except retry_on as exc:
            last_error = exc
            logger.warning(
                "%s attempt %d/%d failed: %s",
                stage,
                attempt,
                policy.max_attempts,
                exc,
            )

    raise ExhaustedRetriesError(stage, policy.max_attempts, last_error) from last_error
