# src/weather_alerts/providers/common.py
"""
Shared HTTP helpers for provider modules.

Design goals
------------
- One async GET per call with a fixed timeout; no retries (the next scheduled
  cycle is the only retry).
- Consistent User-Agent so public APIs can identify the app.
- Body classification by Content-Type: feeds come back as text, everything
  else is tried as JSON and falls back to text.
- Errors are raised as the package taxonomy so the pipeline can decide
  whether to fall back or fail the cycle.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Union

import httpx

from ..errors import NetworkError, RequestTimeout

log = logging.getLogger("providers.common")

DEFAULT_TIMEOUT = 10.0  # seconds, per request

Body = Union[Dict[str, Any], list, str]


def user_agent() -> str:
    return "weather-alerts/0.1 (+https://example.invalid)"


def new_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """Client shared by all requests of one fetch cycle."""
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": user_agent()},
    )


def _is_text_type(content_type: str) -> bool:
    ct = content_type.lower()
    return "xml" in ct or "rss" in ct or "json" not in ct


def decode_body(content_type: str, text: str) -> Body:
    """Return parsed JSON or raw text depending on the declared content type."""
    if _is_text_type(content_type):
        return text
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        log.debug("Content-Type %s but body is not JSON; returning text", content_type)
        return text


async def fetch(
    client: httpx.AsyncClient,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Body:
    """
    GET `url` and return the decoded body.

    Raises RequestTimeout when no complete response arrives within `timeout`,
    NetworkError on connection failures and HTTP error statuses.
    """
    h = {"User-Agent": user_agent()}
    if headers:
        h.update(headers)

    try:
        resp = await client.get(url, params=params, headers=h, timeout=timeout)
    except httpx.TimeoutException as e:
        log.warning("GET %s timed out after %.0fs", url, timeout)
        raise RequestTimeout(f"Request timeout: {url}") from e
    except httpx.HTTPError as e:
        log.warning("GET %s failed: %s", url, e)
        raise NetworkError(f"Request failed: {url}: {e}") from e

    if resp.status_code >= 400:
        log.warning("GET %s -> %s", url, resp.status_code)
        raise NetworkError(f"GET {url} returned HTTP {resp.status_code}")

    ctype = resp.headers.get("Content-Type", "")
    return decode_body(ctype, resp.text)
