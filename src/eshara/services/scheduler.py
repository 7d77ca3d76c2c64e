"""Wall-clock delay scheduling."""
from __future__ import annotations

from datetime import datetime, timedelta

from eshara.core.config import RuntimeConfig
from eshara.domain.defs import DelayDef


class Scheduler:
    """Computes wake times for delays and checks whether they have passed.

    Wake times are absolute UTC datetimes stored on the game state, so a
    wait keeps counting down while the process is not running. Nothing
    here sleeps or blocks.
    """

    def __init__(self, config: RuntimeConfig | None = None) -> None:
        self._config = config or RuntimeConfig()

    def effective_seconds(self, seconds: int) -> int:
        """Return the delay actually applied, capped in debug mode."""
        seconds = max(seconds, 0)
        if self._config.debug:
            return min(seconds, self._config.debug_delay_cap_seconds)
        return seconds

    def arm(self, delay: DelayDef, now: datetime) -> datetime:
        return now + timedelta(seconds=self.effective_seconds(delay.seconds))

    @staticmethod
    def is_elapsed(wake_at: datetime, now: datetime) -> bool:
        return now >= wake_at

    @staticmethod
    def remaining(wake_at: datetime, now: datetime) -> timedelta:
        """Time left until ``wake_at``; zero once it has passed."""
        return max(wake_at - now, timedelta(0))
