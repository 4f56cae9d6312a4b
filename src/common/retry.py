"""Bounded polling shared by every wait site."""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from .exceptions import WaitTimeoutError


@dataclass(frozen=True)
class RetryPolicy:
    """How often to poll and how long to keep trying, in seconds."""
    interval: float
    max_wait: float

    def __post_init__(self):
        if self.interval <= 0:
            raise ValueError("interval must be positive")
        if self.max_wait < 0:
            raise ValueError("max_wait must not be negative")


async def retry(
    action: Callable[[], Any],
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_wait: Optional[Callable[[int, float], None]] = None,
) -> Any:
    """Call ``action`` until it returns a truthy value.

    The budget is spent in polling steps: every failed attempt consumes one
    ``interval`` of ``max_wait``, independent of how long the attempt itself
    took. Exceptions raised by ``action`` propagate unchanged.

    Raises:
        WaitTimeoutError: when the budget is exhausted.
    """
    waited = 0.0
    attempts = 0

    while True:
        attempts += 1
        result = action()
        if inspect.isawaitable(result):
            result = await result
        if result:
            return result

        if waited >= policy.max_wait:
            raise WaitTimeoutError(waited, attempts)

        if on_wait:
            on_wait(attempts, policy.max_wait - waited)

        await sleep(policy.interval)
        waited += policy.interval
