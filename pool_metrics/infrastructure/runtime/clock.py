"""Clock implementation."""

from datetime import datetime, timezone

from pool_metrics.domain.ports import ClockPort
from pool_metrics.domain.types import Timestamp


class SystemClock(ClockPort):
    """System clock implementation."""

    def now(self) -> Timestamp:
        """Get current timestamp."""
        return datetime.now(timezone.utc)
