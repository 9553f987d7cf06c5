# src/weather_alerts/providers/metoffice.py
"""
Met Office DataHub (site-specific) provider.

Fetches the daily point forecast with the caller's API key and maps any
explicit warnings to Alerts. When the payload carries no warnings, alerts are
derived from its probability fields instead (see rules.synthesize_from_probabilities).

Fields used (features[].properties.warnings[]):
    warningType   -> event        (default "Weather Warning")
    headline      -> headline
    description   -> description
    warningLevel  -> severity     (classified; default Yellow)
    validFrom     -> start        (required; entry dropped otherwise)
    validTo       -> end          (defaults to start)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from ..classify import classify_severity
from ..errors import MalformedPayload
from ..models import Alert, AlertSource, parse_timestamp
from ..rules import synthesize_from_probabilities
from .common import fetch

log = logging.getLogger("providers.metoffice")

DATAHUB_DAILY_URL = "https://data.hub.api.metoffice.gov.uk/sitespecific/v0/point/daily"
DEFAULT_EVENT = "Weather Warning"


def _warnings(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for feature in payload.get("features") or []:
        if not isinstance(feature, dict):
            continue
        props = feature.get("properties") or {}
        warnings = props.get("warnings") if isinstance(props, dict) else None
        if isinstance(warnings, list):
            out.extend(w for w in warnings if isinstance(w, dict))
    return out


def parse_warnings(payload: Any) -> List[Alert]:
    if not isinstance(payload, dict):
        return []
    out: List[Alert] = []
    for w in _warnings(payload):
        start = parse_timestamp(w.get("validFrom"))
        if start is None:
            log.debug("Dropping Met Office warning without validFrom: %r", w.get("warningType"))
            continue
        event = w.get("warningType")
        description = w.get("description")
        out.append(
            Alert(
                event=event if isinstance(event, str) and event else DEFAULT_EVENT,
                headline=w.get("headline") if isinstance(w.get("headline"), str) else None,
                description=description if isinstance(description, str) else "",
                severity=classify_severity(w.get("warningLevel")),
                start=start,
                end=parse_timestamp(w.get("validTo")) or start,
                source=AlertSource.METOFFICE,
            )
        )
    return out


async def fetch_alerts(
    client: httpx.AsyncClient,
    lat: float,
    lon: float,
    api_key: str,
) -> List[Alert]:
    data = await fetch(
        client,
        DATAHUB_DAILY_URL,
        headers={"apikey": api_key, "Accept": "application/json"},
        params={"latitude": lat, "longitude": lon},
    )
    if not isinstance(data, dict):
        raise MalformedPayload("Met Office DataHub did not return a JSON object")

    alerts = parse_warnings(data)
    if alerts:
        log.info("Met Office: %d explicit warning(s)", len(alerts))
        return alerts

    alerts = synthesize_from_probabilities(data)
    log.info("Met Office: no explicit warnings; %d derived from probabilities", len(alerts))
    return alerts
