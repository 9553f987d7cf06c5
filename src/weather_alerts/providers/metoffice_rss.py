# src/weather_alerts/providers/metoffice_rss.py
"""
Met Office regional warnings feed (RSS) provider.

Fetches the warnings RSS for the region covering the configured location and
parses each <item> into an Alert.

Notes
-----
- The document is parsed with ElementTree, so XML entities are decoded exactly
  once. Descriptions that carry HTML (escaped or in CDATA) have their tags
  stripped; plain text like "gusts > 60 mph" is left alone.
- Title drives severity and event:
      "Yellow warning of snow, ice affecting South West England"
        -> severity Yellow, event "Snow, Ice Warning"
- Description drives the validity window:
      "... valid from 0000 Fri 02 Jan to 1200 Fri 02 Jan"
  The feed omits the year: the first occurrence of that day no more than
  IN_FORCE_GRACE_DAYS before today is used, so a warning that started
  yesterday stays in this year and 02 Jan read in October is next year. If
  there is no such phrase, ISO dates found in the description are used instead.
- Times in the feed are UK local time.
- Items without a resolvable start are dropped (debug log, not an error).
  Items that blow up are logged, recorded in FeedParseResult.errors, and
  skipped. Only a body that is not a well-formed RSS document raises
  (ParseFailure).

Public API
----------
feed_url(code) -> str
parse_feed(text, today=None, tz=UK_TZ) -> FeedParseResult
fetch_alerts(client, lat, lon, today=None) -> list[Alert]   (async)
"""

from __future__ import annotations

import html
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, List, Optional, Tuple
from zoneinfo import ZoneInfo

import httpx

from ..errors import ParseFailure
from ..models import Alert, AlertSource, Severity
from ..regions import region_code_for
from .common import fetch

log = logging.getLogger("providers.metoffice_rss")

UK_TZ = ZoneInfo("Europe/London")
FEED_BASE_URL = "https://www.metoffice.gov.uk/public/data/PWSCache/WarningsRSS/Region"
DEFAULT_EVENT = "Weather Warning"

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

# A warning is normally still in force a few days after it starts.
IN_FORCE_GRACE_DAYS = 7

_FEED_ROOTS = {"rss", "rdf", "channel"}
# Only real tags: "<p>", "</p>", "<br/>". "< 10 mm" is text.
_TAG_RE = re.compile(r"</?[A-Za-z][\w:-]*(?:\s[^<>]*)?/?>")
_SPACES_RE = re.compile(r"\s+")

_EVENT_RE = re.compile(r"warning\s+of\s+(.+?)\s+affecting\s+", re.I)
_VALID_RE = re.compile(
    r"valid\s+from\s+(\d{4})\s+[A-Za-z]{3}\w*\s+(\d{1,2})\s+([A-Za-z]{3})\w*"
    r"\s+to\s+(\d{4})\s+[A-Za-z]{3}\w*\s+(\d{1,2})\s+([A-Za-z]{3})\w*",
    re.I,
)
_ISO_RE = re.compile(
    r"\b(\d{4}-\d{2}-\d{2})(?:[T ](\d{2}:\d{2}(?::\d{2})?)(Z|[+-]\d{2}:?\d{2})?)?"
)

# Words that carry severity or glue, not the hazard itself.
_NOISE_WORDS = {
    "red", "amber", "yellow", "orange", "severe", "extreme",
    "weather", "warning", "warnings", "of", "for", "in", "the",
    "issued", "updated", "update", "affecting",
}


@dataclass
class FeedItemError:
    index: int
    title: str
    message: str


@dataclass
class FeedParseResult:
    alerts: List[Alert] = field(default_factory=list)
    errors: List[FeedItemError] = field(default_factory=list)
    items_seen: int = 0


def feed_url(code: str) -> str:
    return f"{FEED_BASE_URL}/{code}"


# -----------------------------------------------------------------------------
# Text helpers
# -----------------------------------------------------------------------------


def _local_name(tag: Any) -> str:
    # "{http://purl.org/rss/1.0/}item" -> "item"
    return tag.rsplit("}", 1)[-1].lower() if isinstance(tag, str) else ""


def _clean(text: str) -> str:
    """Strip HTML when the text is HTML; always collapse whitespace."""
    if _TAG_RE.search(text):
        text = html.unescape(_TAG_RE.sub(" ", text))
    return _SPACES_RE.sub(" ", text).strip()


def _child_text(elem: ET.Element, name: str) -> str:
    for child in elem:
        if _local_name(child.tag) == name:
            return _clean("".join(child.itertext()))
    return ""


def _capitalize_words(text: str) -> str:
    return " ".join(w[:1].upper() + w[1:].lower() for w in text.split())


# -----------------------------------------------------------------------------
# Title -> severity / event
# -----------------------------------------------------------------------------


def title_severity(title: str) -> Severity:
    t = (title or "").lower()
    if "red warning" in t or "extreme" in t:
        return Severity.RED
    if "amber warning" in t or "severe" in t:
        return Severity.AMBER
    return Severity.YELLOW


def extract_event(title: str) -> str:
    """
    "<severity> warning of <events> affecting <region>" -> "<Events> Warning".
    Otherwise strip severity/connector words; a residue shorter than three
    characters means there is nothing useful left.
    """
    title = title or ""
    m = _EVENT_RE.search(title)
    if m:
        hazards = m.group(1).strip(" ,.-")
        if hazards:
            return f"{_capitalize_words(hazards)} Warning"

    head = re.split(r"\baffecting\b", title, maxsplit=1, flags=re.I)[0]
    words = [w for w in head.split() if w.strip(",.:;-").lower() not in _NOISE_WORDS]
    residue = " ".join(words).strip(" ,.:;-")
    if len(residue) < 3:
        return DEFAULT_EVENT
    return f"{_capitalize_words(residue)} Warning"


# -----------------------------------------------------------------------------
# Description -> validity window
# -----------------------------------------------------------------------------


def infer_year(month: int, day: int, today: date) -> Optional[int]:
    """
    Year of the first (month, day) no more than IN_FORCE_GRACE_DAYS before
    today. Searches from last year (31 Dec read on 1 Jan) up to four years
    ahead (29 Feb).
    """
    if not 1 <= month <= 12:
        return None
    earliest = today - timedelta(days=IN_FORCE_GRACE_DAYS)
    for year in range(today.year - 1, today.year + 5):
        try:
            candidate = date(year, month, day)
        except ValueError:
            # 29 Feb outside a leap year, or an impossible day
            continue
        if candidate >= earliest:
            return year
    return None


def _hhmm(value: str) -> Optional[time]:
    hh, mm = int(value[:2]), int(value[2:])
    if hh == 24 and mm == 0:
        return time(23, 59, 59)
    if 0 <= hh <= 23 and 0 <= mm <= 59:
        return time(hh, mm)
    return None


def _primary_validity(
    text: str, today: date, tz: tzinfo
) -> Optional[Tuple[datetime, datetime]]:
    m = _VALID_RE.search(text)
    if not m:
        return None
    t0, d0, mon0, t1, d1, mon1 = m.groups()
    month0 = _MONTHS.get(mon0[:3].lower())
    month1 = _MONTHS.get(mon1[:3].lower())
    start_t, end_t = _hhmm(t0), _hhmm(t1)
    if month0 is None or month1 is None or start_t is None or end_t is None:
        return None

    year = infer_year(month0, int(d0), today)
    if year is None:
        return None
    start = datetime.combine(date(year, month0, int(d0)), start_t, tzinfo=tz)

    # End shares the start's year unless that would put it before the start
    # (e.g. valid from 31 Dec to 01 Jan).
    end: Optional[datetime] = None
    for end_year in (year, year + 1):
        try:
            candidate = datetime.combine(date(end_year, month1, int(d1)), end_t, tzinfo=tz)
        except ValueError:
            continue
        if candidate >= start:
            end = candidate
            break
    return start, end or start


IsoMatch = Tuple[str, Optional[str], Optional[str]]  # (date, clock, offset)


def _iso_matches(text: str) -> List[IsoMatch]:
    out: List[IsoMatch] = []
    for m in _ISO_RE.finditer(text):
        day, clock, offset = m.groups()
        try:
            date.fromisoformat(day)
        except ValueError:
            continue
        out.append((day, clock, offset))
    return out


def _iso_to_datetime(match: IsoMatch, tz: tzinfo, end: bool) -> datetime:
    day, clock, offset = match
    d = date.fromisoformat(day)
    if not clock:
        return datetime.combine(d, time(23, 59, 59) if end else time(0, 0), tzinfo=tz)
    dt = datetime.fromisoformat(f"{day}T{clock}")
    if not offset:
        return dt.replace(tzinfo=tz)
    if offset.upper() == "Z":
        offset = "+00:00"
    elif ":" not in offset:
        offset = f"{offset[:3]}:{offset[3:]}"
    return datetime.fromisoformat(f"{day}T{clock}{offset}")


def _iso_validity(text: str, tz: tzinfo) -> Optional[Tuple[datetime, datetime]]:
    found = _iso_matches(text)
    if not found:
        return None
    start = _iso_to_datetime(found[0], tz, end=False)
    if len(found) == 1:
        # Single date: the window is that whole day.
        return start, datetime.combine(start.date(), time(23, 59, 59), tzinfo=start.tzinfo)
    return start, _iso_to_datetime(found[1], tz, end=True)


def parse_validity(
    text: str, today: date, tz: tzinfo = UK_TZ
) -> Optional[Tuple[datetime, datetime]]:
    if not text:
        return None
    return _primary_validity(text, today, tz) or _iso_validity(text, tz)


# -----------------------------------------------------------------------------
# Feed
# -----------------------------------------------------------------------------


def _parse_item(item: ET.Element, today: date, tz: tzinfo) -> Optional[Alert]:
    title = _child_text(item, "title")
    description = _child_text(item, "description")

    window = parse_validity(description, today, tz)
    if window is None:
        log.debug("Dropping feed item without a usable validity window: %r", title)
        return None
    start, end = window

    return Alert(
        event=extract_event(title),
        headline=title or None,
        description=description,
        severity=title_severity(title),
        start=start,
        end=end,
        source=AlertSource.METOFFICE_RSS,
    )


def parse_feed(text: Any, today: Optional[date] = None, tz: tzinfo = UK_TZ) -> FeedParseResult:
    if not isinstance(text, str):
        raise ParseFailure(f"Expected feed text, got {type(text).__name__}")
    try:
        root = ET.fromstring(text.strip())
    except ET.ParseError as e:
        raise ParseFailure(f"Feed is not well-formed XML: {e}") from e
    if _local_name(root.tag) not in _FEED_ROOTS:
        raise ParseFailure(f"Body does not look like an RSS feed (root <{_local_name(root.tag)}>)")

    today = today or datetime.now(tz).date()
    result = FeedParseResult()
    items = [el for el in root.iter() if _local_name(el.tag) == "item"]
    for i, item in enumerate(items):
        result.items_seen += 1
        try:
            alert = _parse_item(item, today, tz)
        except Exception as e:
            title = _child_text(item, "title")
            log.warning("Skipping malformed feed item #%d (%r): %s", i, title, e)
            result.errors.append(FeedItemError(index=i, title=title, message=str(e)))
            continue
        if alert is not None:
            result.alerts.append(alert)

    log.debug(
        "Parsed %d alert(s) from %d feed item(s), %d error(s)",
        len(result.alerts),
        result.items_seen,
        len(result.errors),
    )
    return result


async def fetch_alerts(
    client: httpx.AsyncClient,
    lat: float,
    lon: float,
    today: Optional[date] = None,
) -> List[Alert]:
    code = region_code_for(lat, lon)
    url = feed_url(code)
    body = await fetch(
        client,
        url,
        headers={"Accept": "application/rss+xml, application/xml, text/xml"},
    )
    result = parse_feed(body, today=today)
    log.info("Region feed '%s': %d warning(s)", code, len(result.alerts))
    return result.alerts
