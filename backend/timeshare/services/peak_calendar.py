"""Peak-calendar filter.

Peak periods recur every year and are configured as ``MM-DD`` bounds. A
period whose end sorts before its start (``12-15`` to ``01-05``) wraps the
year boundary.
"""

import logging
from collections.abc import Iterable
from datetime import date, timedelta

from timeshare.config import PeakPeriod, settings

logger = logging.getLogger(__name__)


def _month_day(value: str) -> tuple[int, int]:
    month, day = value.split("-")
    return int(month), int(day)


class PeakCalendar:
    """Answers "does this stay touch a peak period?" for a fixed set of periods."""

    def __init__(self, periods: Iterable[PeakPeriod]) -> None:
        self._periods = [(_month_day(p.start), _month_day(p.end), p) for p in periods]

    @classmethod
    def from_settings(cls) -> "PeakCalendar":
        return cls(settings.peak_periods)

    def peak_period_for(self, day: date) -> PeakPeriod | None:
        """Return the first configured period containing ``day``, if any."""
        key = (day.month, day.day)
        for start, end, period in self._periods:
            if start <= end:
                if start <= key <= end:
                    return period
            elif key >= start or key <= end:
                return period
        return None

    def is_peak_date(self, day: date) -> bool:
        return self.peak_period_for(day) is not None

    def overlaps_peak(self, start: date, end: date) -> bool:
        """True if any day of ``[start, end]`` (both ends inclusive) is peak."""
        if not self._periods:
            return False
        day = start
        while day <= end:
            if self.is_peak_date(day):
                logger.debug("Range %s..%s hits peak on %s", start, end, day)
                return True
            day += timedelta(days=1)
        return False
