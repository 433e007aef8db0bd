"""Bounded retry with quadratic backoff.

Each attempt ends in one of three states: success, retryable failure or
fatal failure. A retryable failure with retries left sleeps ``n**2`` backoff
units (n = 1 for the first retry) and moves to the next attempt; anything
else ends the loop with the last error.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from ..errors import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


def classify(exc: BaseException | None) -> AttemptOutcome:
    if exc is None:
        return AttemptOutcome.SUCCESS
    return AttemptOutcome.RETRYABLE if is_retryable(exc) else AttemptOutcome.FATAL


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_retries: int = 2
    backoff_unit_s: float = 1.0

    def backoff_s(self, retry: int) -> float:
        """Delay before the given retry (1-based)."""
        return float(retry * retry) * self.backoff_unit_s

    def should_retry(self, exc: BaseException, retries_done: int) -> bool:
        return classify(exc) is AttemptOutcome.RETRYABLE and retries_done < self.max_retries


async def call_with_retry(
    attempt: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    sleep: Sleep = asyncio.sleep,
    op: str = "reasoning",
) -> T:
    """Run ``attempt`` until it succeeds, fails fatally or retries run out.

    Cancellation during an attempt or a backoff sleep propagates immediately.
    """
    retries_done = 0
    while True:
        try:
            return await attempt()
        except Exception as exc:
            if not policy.should_retry(exc, retries_done):
                if is_retryable(exc):
                    logger.warning(
                        "%s failed after %s retries: %s", op, retries_done, exc
                    )
                raise

            retries_done += 1
            delay = policy.backoff_s(retries_done)
            logger.warning(
                "%s failed (retry %s/%s in %.1fs): %s",
                op,
                retries_done,
                policy.max_retries,
                delay,
                exc,
            )
            await sleep(delay)
