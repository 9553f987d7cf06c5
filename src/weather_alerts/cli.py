# src/weather_alerts/cli.py
"""
Command-line entrypoint for weather-alerts.

`python -m weather_alerts` (or the `weather-alerts` script) runs one fetch
cycle and prints the JSON payload: {"current", "alerts", "forecast"}, or
{"message"} when the forecast could not be fetched.

Periodic refresh belongs to whoever schedules this command (cron, a display
host, ...), not to the CLI.

Exit codes
----------
0  payload printed (possibly with zero alerts)
1  configuration error (missing/invalid app.yaml, bad override)
2  error payload printed
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from . import __version__, pipeline
from .settings import ENV_CONFIG_DIR, ENV_ROOT, LocationConfig, Settings

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_RUNTIME = 2

REDACTED = "********"


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="weather-alerts",
        description="Severe-weather alerts and a short forecast from Met Office / Open-Meteo.",
    )
    cfg = p.add_argument_group("configuration")
    cfg.add_argument("--root", type=Path, help=f"Repo root (default: inferred, or ${ENV_ROOT})")
    cfg.add_argument(
        "--config-dir", type=Path, help=f"Directory holding app.yaml (default: ROOT/config, or ${ENV_CONFIG_DIR})"
    )

    loc = p.add_argument_group("location overrides (this run only)")
    loc.add_argument("--lat", type=float, metavar="DEG")
    loc.add_argument("--lon", type=float, metavar="DEG")
    loc.add_argument("--label")

    p.add_argument(
        "--print-settings",
        action="store_true",
        help="Print effective settings with the API key masked, then exit.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def _settings_view(settings: Settings) -> Dict[str, Any]:
    """JSON view of the settings plus the derived alert chain; key masked."""
    data = settings.model_dump(mode="json")
    if data["credentials"].get("metoffice_api_key"):
        data["credentials"]["metoffice_api_key"] = REDACTED
    data["is_uk"] = settings.is_uk
    data["enabled_alert_sources"] = settings.enabled_alert_sources
    return data


def _apply_location(settings: Settings, ns: argparse.Namespace) -> Settings:
    overrides = {
        k: v
        for k, v in (("latitude", ns.lat), ("longitude", ns.lon), ("label", ns.label))
        if v is not None
    }
    if not overrides:
        return settings
    merged = {**settings.app.location.model_dump(), **overrides}
    app = settings.app.model_copy(update={"location": LocationConfig(**merged)})
    return settings.model_copy(update={"app": app})


def _load(ns: argparse.Namespace) -> Settings:
    # Exported so Settings.load sees the same overrides as any child process.
    if ns.root:
        os.environ[ENV_ROOT] = str(ns.root.expanduser())
    if ns.config_dir:
        os.environ[ENV_CONFIG_DIR] = str(ns.config_dir.expanduser())
    settings = Settings.load(root=ns.root.expanduser() if ns.root else None)
    return _apply_location(settings, ns)


def _dump(obj: Dict[str, Any]) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def main(argv: Optional[list[str]] = None) -> int:
    ns = _build_parser().parse_args(sys.argv[1:] if argv is None else argv)

    try:
        settings = _load(ns)
    except Exception as e:
        print(f"[config] {e}", file=sys.stderr)
        return EXIT_CONFIG

    if ns.print_settings:
        _dump(_settings_view(settings))
        return EXIT_OK

    payload = pipeline.run(settings)
    _dump(payload)
    if "message" in payload:
        print(f"[runtime] {payload['message']}", file=sys.stderr)
        return EXIT_RUNTIME
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
