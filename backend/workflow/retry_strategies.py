"""Retry strategies for steps whose error policy is ``retry``.

The engine re-invokes a failed step up to ``retry_count`` times, waiting
``base_delay * attempt`` before each attempt (linear backoff, uncapped).

Usage:
    strategy = RetryStrategy.for_step(step, base_delay=1.0)
    for attempt in strategy.attempts():
        await attempt.wait()
        try:
            output = await handler.execute(config, run)
            break
        except Exception:
            continue
"""

import asyncio
from dataclasses import dataclass
from enum import Enum

from core.constants import ErrorPolicy


class RetryPolicy(str, Enum):
    """Available backoff policies."""
    LINEAR = "linear"
    NONE = "none"


@dataclass
class RetryAttempt:
    """A single retry attempt with its computed delay (seconds)."""
    number: int
    delay: float
    max_retries: int

    async def wait(self) -> None:
        if self.delay > 0:
            await asyncio.sleep(self.delay)


@dataclass
class RetryStrategy:
    policy: RetryPolicy
    max_retries: int = 0
    base_delay: float = 1.0

    @classmethod
    def none(cls) -> 'RetryStrategy':
        return cls(policy=RetryPolicy.NONE, max_retries=0)

    @classmethod
    def linear(cls, max_retries: int = 3, base_delay: float = 1.0) -> 'RetryStrategy':
        """Linear backoff: delay = base_delay * attempt_number."""
        return cls(policy=RetryPolicy.LINEAR, max_retries=max_retries, base_delay=base_delay)

    @classmethod
    def for_step(cls, step, base_delay: float = 1.0) -> 'RetryStrategy':
        """Strategy for a step definition: linear when on_error is retry, none otherwise."""
        if step.on_error != ErrorPolicy.RETRY or step.retry_count <= 0:
            return cls.none()
        return cls.linear(max_retries=step.retry_count, base_delay=base_delay)

    def compute_delay(self, attempt: int) -> float:
        """Compute the delay for a given attempt number (1-based)."""
        if self.policy == RetryPolicy.NONE:
            return 0.0
        return round(self.base_delay * attempt, 3)

    def attempts(self) -> list[RetryAttempt]:
        """Retry attempts with pre-computed delays; empty for the none policy."""
        if self.policy == RetryPolicy.NONE:
            return []
        return [
            RetryAttempt(
                number=i,
                delay=self.compute_delay(i),
                max_retries=self.max_retries,
            )
            for i in range(1, self.max_retries + 1)
        ]
