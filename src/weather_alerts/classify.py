# src/weather_alerts/classify.py
"""
Severity, event-category and sky-condition lookups.

All matching is case-insensitive substring matching against fixed, ordered
tables; the first entry that matches wins.

Public API
----------
classify_severity(text)      -> Severity
classify_event_icon(event)   -> str   (category tag)
describe_condition(code)     -> str   (human condition string)
condition_icon(code)         -> str   (sky icon tag)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from .models import Severity

# -----------------------------------------------------------------------------
# Severity
# -----------------------------------------------------------------------------

# Precedence: Red, then Amber, then Yellow-or-default.
_SEVERITY_KEYWORDS: List[Tuple[Severity, Tuple[str, ...]]] = [
    (Severity.RED, ("extreme", "red")),
    (Severity.AMBER, ("severe", "amber", "orange")),
    (Severity.YELLOW, ("moderate", "yellow")),
]


def classify_severity(text: Any) -> Severity:
    if isinstance(text, Severity):
        return text
    if not isinstance(text, str) or not text.strip():
        return Severity.YELLOW
    t = text.lower()
    for severity, keywords in _SEVERITY_KEYWORDS:
        if any(k in t for k in keywords):
            return severity
    return Severity.YELLOW


# -----------------------------------------------------------------------------
# Event category
# -----------------------------------------------------------------------------

DEFAULT_EVENT_ICON = "warning"

_EVENT_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("thunderstorm", ("thunder", "lightning")),
    ("wind", ("wind", "gale")),
    ("rain", ("rain", "flood")),
    ("snow", ("snow", "ice", "frost")),
    ("fog", ("fog",)),
    ("heat", ("heat", "hot")),
    ("cold", ("cold", "freeze")),
    ("tornado", ("tornado",)),
    ("hurricane", ("hurricane", "cyclone")),
]


def classify_event_icon(event: Optional[str]) -> str:
    if not event:
        return DEFAULT_EVENT_ICON
    e = event.lower()
    for tag, keywords in _EVENT_KEYWORDS:
        if any(k in e for k in keywords):
            return tag
    return DEFAULT_EVENT_ICON


# -----------------------------------------------------------------------------
# WMO weather interpretation codes
# -----------------------------------------------------------------------------

UNKNOWN_CONDITION = "Unknown"

CONDITIONS: Dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Icy fog",
    51: "Light drizzle",
    53: "Drizzle",
    55: "Dense drizzle",
    56: "Freezing drizzle",
    57: "Heavy freezing drizzle",
    61: "Light rain",
    63: "Rain",
    65: "Heavy rain",
    66: "Freezing rain",
    67: "Heavy freezing rain",
    71: "Light snow",
    73: "Snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Light showers",
    81: "Showers",
    82: "Heavy showers",
    85: "Snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with hail",
    99: "Severe thunderstorm",
}

_CONDITION_ICONS: Dict[int, str] = {
    0: "clear",
    1: "clear",
    2: "partly-cloudy",
    3: "cloudy",
    45: "fog",
    48: "fog",
    51: "drizzle",
    53: "drizzle",
    55: "drizzle",
    61: "rain",
    63: "rain",
    65: "rain",
    71: "snow",
    73: "snow",
    75: "snow",
    80: "drizzle",
    81: "rain",
    82: "rain",
    85: "snow",
    86: "snow",
    95: "thunderstorm",
    96: "thunderstorm",
    99: "thunderstorm",
}


def _as_code(code: Any) -> Optional[int]:
    if isinstance(code, bool):
        return None
    if isinstance(code, int):
        return code
    if isinstance(code, float) and code.is_integer():
        return int(code)
    return None


def describe_condition(code: Any) -> str:
    c = _as_code(code)
    if c is None:
        return UNKNOWN_CONDITION
    return CONDITIONS.get(c, UNKNOWN_CONDITION)


def condition_icon(code: Any) -> str:
    c = _as_code(code)
    if c is None:
        return "unknown"
    return _CONDITION_ICONS.get(c, "unknown")
