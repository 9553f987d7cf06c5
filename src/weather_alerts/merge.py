# src/weather_alerts/merge.py
"""
Alert merge & ranking.

rank(alerts)              stable sort, Red > Amber > Yellow; ties keep input order
deduplicate(alerts)       first occurrence of each (event, start) key wins
merge(alerts)             deduplicate(rank(alerts)); the surviving duplicate is
                          therefore always the highest-severity one
correlate(alerts, days, tz)
                          flag forecast days on which any alert starts; the
                          start is read as a calendar date in tz (the forecast
                          location's zone), time of day ignored
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Iterable, List, Optional, Set

from .models import Alert, ForecastDay


def rank(alerts: Iterable[Alert]) -> List[Alert]:
    return sorted(alerts, key=lambda a: a.severity.rank, reverse=True)


def deduplicate(alerts: Iterable[Alert]) -> List[Alert]:
    seen: Set[tuple] = set()
    out: List[Alert] = []
    for a in alerts:
        key = a.dedup_key
        if key in seen:
            continue
        seen.add(key)
        out.append(a)
    return out


def merge(alerts: Iterable[Alert]) -> List[Alert]:
    return deduplicate(rank(alerts))


def correlate(
    alerts: Iterable[Alert], days: Iterable[ForecastDay], tz: Optional[tzinfo] = None
) -> List[ForecastDay]:
    # Forecast dates are local to the forecast location; alert starts are not.
    if tz is None:
        alert_dates = {a.start.date() for a in alerts}
    else:
        alert_dates = {a.start.astimezone(tz).date() for a in alerts}
    return [d.with_warning(d.date in alert_dates) for d in days]
