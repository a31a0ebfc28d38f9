"""
Search window for flight lookups.

A pickup date is a UTC calendar day D. Flights are searched over
[D - 12h, D + 1 day + 12h], which catches late-evening and early-morning
arrivals around the day boundary.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple

from ..errors import InvalidPickupDateError

ISO_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
ISO_DATETIME_WITH_OFFSET = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(?::\d{2}(?:\.\d{1,6})?)?(?:Z|[+-]\d{2}:\d{2})$"
)

WINDOW_PADDING = timedelta(hours=12)


@dataclass(frozen=True)
class SearchWindow:
    start: datetime
    end: datetime

    def capped(self, now: datetime, horizon_days: int = 2) -> "SearchWindow":
        """The live endpoint refuses far-future queries: cap end at now + horizon"""
        return SearchWindow(self.start, min(self.end, now + timedelta(days=horizon_days)))

    def date_range(self) -> Tuple[date, date]:
        """Day-granularity range for the schedules endpoint"""
        return self.start.date(), self.end.date()


def parse_pickup_date(value: str) -> date:
    """
    Parse a pickup date as a UTC calendar day.

    "2025-12-25" -> 2025-12-25
    "2025-12-25T23:30:00-02:00" -> 2025-12-26 (truncated after conversion to UTC)
    """
    value = (value or "").strip()

    if ISO_DATE_ONLY.match(value):
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise InvalidPickupDateError(value)

    if ISO_DATETIME_WITH_OFFSET.match(value):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise InvalidPickupDateError(value)
        return parsed.astimezone(timezone.utc).date()

    raise InvalidPickupDateError(value)


def compute_search_window(day: date) -> SearchWindow:
    midnight = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return SearchWindow(
        start=midnight - WINDOW_PADDING,
        end=midnight + timedelta(days=1) + WINDOW_PADDING,
    )


def should_use_live_source(window: SearchWindow, now: datetime, horizon_days: int = 2) -> bool:
    """Live /flights data for near-term searches, /schedules beyond the horizon"""
    return window.start - now < timedelta(days=horizon_days)
