# SPDX-License-Identifier: MIT
"""Bounded fixed-interval retry bookkeeping for failed syncs."""

from dataclasses import dataclass

from .constants import MAX_RETRIES, RETRY_INTERVAL_SECONDS
from .logging_config import get_detail_logger


detail_logger = get_detail_logger()


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of registering a failed attempt."""

    retry: bool
    delay: float
    attempt: int
    message: str


class RetryPolicy:
    """Counts consecutive failures and decides whether to try again.

    With `max_retries=3` the first failure and the second are each followed by
    one retry; the third consecutive failure is terminal.
    """

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        interval: float = RETRY_INTERVAL_SECONDS,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if interval < 0:
            raise ValueError("interval cannot be negative")

        self.max_retries = max_retries
        self.interval = interval
        self.retry_count = 0

    @property
    def exhausted(self) -> bool:
        return self.retry_count >= self.max_retries

    def reset(self) -> None:
        self.retry_count = 0

    def register_failure(self, error: Exception) -> RetryDecision:
        """Record one failed attempt.

        Args:
            error: The failure of the attempt

        Returns:
            Whether to retry, after what delay, and the status message to show
        """
        if not self.exhausted:
            self.retry_count += 1

        if self.exhausted:
            detail_logger.debug(f"Retry budget exhausted after {self.retry_count} attempts")
            return RetryDecision(
                retry=False,
                delay=0.0,
                attempt=self.retry_count,
                message=f"Sync failed after {self.max_retries} attempts: {error}",
            )

        detail_logger.debug(
            f"Scheduling retry {self.retry_count}/{self.max_retries} "
            f"in {self.interval:.0f}s"
        )
        return RetryDecision(
            retry=True,
            delay=self.interval,
            attempt=self.retry_count,
            message=(
                f"Sync failed, retrying in {self.interval:.0f}s "
                f"({self.retry_count}/{self.max_retries}): {error}"
            ),
        )
