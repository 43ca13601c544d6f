"""Wall-clock access."""

from datetime import UTC, datetime


class SystemClock:
    """Clock backed by the system's wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(UTC)
