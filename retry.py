"""Bounded retry with exponential backoff."""

import logging
import time
from typing import Callable, Optional, TypeVar

from pydantic import BaseModel, Field

import config

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """How often and how long to wait before giving up."""
    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=2.0, ge=0)
    multiplier: float = Field(default=2.0, ge=1)
    max_delay: Optional[float] = None

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed ``attempt`` (0-based)."""
        delay = self.base_delay * (self.multiplier ** attempt)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        return cls(
            max_attempts=config.MAX_RETRIES,
            base_delay=config.RETRY_BASE_DELAY,
            multiplier=config.RETRY_MULTIPLIER,
            max_delay=config.RETRY_MAX_DELAY,
        )


def call_with_retry(
    func: Callable[[], T],
    policy: RetryPolicy,
    is_retryable: Callable[[BaseException], bool],
    sleep: Callable[[float], None] = time.sleep,
    description: str = "call",
) -> T:
    """Call ``func`` until it succeeds or the policy runs out.

    Args:
        func: Zero-argument callable to run.
        policy: Attempt count and backoff.
        is_retryable: Decides whether an exception is worth another attempt.
        sleep: Delay function, swapped out in tests.
        description: Label used in log messages.

    Returns:
        Whatever ``func`` returns.

    Raises:
        The last exception when it is not retryable or attempts are exhausted.
    """
    for attempt in range(policy.max_attempts):
        try:
            return func()
        except Exception as e:
            last_attempt = attempt == policy.max_attempts - 1
            if not is_retryable(e) or last_attempt:
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                f"{description} failed ({e}), retrying in {delay:.1f}s "
                f"(attempt {attempt + 1}/{policy.max_attempts})"
            )
            sleep(delay)

    # max_attempts >= 1 so the loop always returns or raises
    raise RuntimeError("unreachable")
