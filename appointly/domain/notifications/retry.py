"""Retry policy for notification delivery"""

from dataclasses import dataclass
from typing import Optional

from ...config import (
    NOTIFICATION_BACKOFF_MAX_SECONDS,
    NOTIFICATION_BACKOFF_SECONDS,
    NOTIFICATION_MAX_ATTEMPTS,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: base, 2*base, 4*base ... capped at max_delay_seconds"""

    max_attempts: int = NOTIFICATION_MAX_ATTEMPTS
    base_delay_seconds: float = NOTIFICATION_BACKOFF_SECONDS
    max_delay_seconds: float = NOTIFICATION_BACKOFF_MAX_SECONDS

    def delay_for(self, attempt: int) -> Optional[float]:
        """
        Seconds to wait after failed ``attempt`` (1-based) before the next one.

        None once the attempt budget is spent.
        """
        if attempt < 1 or attempt >= self.max_attempts:
            return None
        return min(self.base_delay_seconds * (2 ** (attempt - 1)), self.max_delay_seconds)


DEFAULT_RETRY_POLICY = RetryPolicy()
