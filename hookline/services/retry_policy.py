"""Retry schedule for failed webhook deliveries."""

from datetime import datetime, timedelta

from hookline.config import Settings, get_settings
from hookline.models import utcnow

MAX_ATTEMPTS = 5
RETRY_DELAYS = [60, 300, 900, 3600, 7200]  # Seconds: 1m, 5m, 15m, 1h, 2h


class RetryPolicy:
    """Fixed backoff table indexed by the attempt number just completed (1-based)."""

    def __init__(self, max_attempts: int = MAX_ATTEMPTS, delays: list[int] | None = None):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.delays = list(delays or RETRY_DELAYS)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RetryPolicy":
        settings = settings or get_settings()
        return cls(settings.webhook_max_attempts, settings.webhook_retry_delays)

    def delay_for(self, attempt_count: int) -> timedelta | None:
        """Wait before the next attempt, or None once the cap is reached."""
        if attempt_count >= self.max_attempts:
            return None
        # Past the end of the table, keep using the longest delay
        index = min(max(attempt_count, 1), len(self.delays)) - 1
        return timedelta(seconds=self.delays[index])

    def next_retry_at(self, attempt_count: int, now: datetime | None = None) -> datetime | None:
        delay = self.delay_for(attempt_count)
        if delay is None:
            return None
        return (now or utcnow()) + delay
