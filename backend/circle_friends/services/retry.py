from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class RetryResult:
    succeeded: bool
    attempts: int
    value: Any = None


def exponential_backoff(base_delay: float) -> Callable[[int], float]:
    """Delay in seconds before attempt N (1-based): base_delay * 2**(N-1)."""

    def delay(attempt: int) -> float:
        return base_delay * 2 ** (attempt - 1)

    return delay


async def retry_until(
    probe: Callable[[], Awaitable[Any]],
    predicate: Callable[[Any], bool],
    *,
    max_attempts: int,
    backoff: Callable[[int], float],
    sleep: Sleep = asyncio.sleep,
) -> RetryResult:
    """Sleep, probe, repeat until `predicate(value)` holds or attempts run out."""
    value = None
    for attempt in range(1, max_attempts + 1):
        await sleep(backoff(attempt))
        value = await probe()
        if predicate(value):
            return RetryResult(succeeded=True, attempts=attempt, value=value)
        logger.debug(f"retry_until: attempt {attempt}/{max_attempts} not satisfied ({value!r})")
    return RetryResult(succeeded=False, attempts=max_attempts, value=value)
