# tests/test_providers.py
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from weather_alerts.errors import MalformedPayload, ParseFailure
from weather_alerts.models import AlertSource, Severity
from weather_alerts.providers import metoffice as metoffice_mod
from weather_alerts.providers import metoffice_rss as rss_mod
from weather_alerts.providers import open_meteo as open_meteo_mod
from weather_alerts.providers.metoffice_rss import (
    IN_FORCE_GRACE_DAYS,
    UK_TZ,
    extract_event,
    infer_year,
    parse_feed,
    parse_validity,
    title_severity,
)


def _item(title: str, description: str) -> str:
    return f"<item><title>{title}</title><description>{description}</description></item>"


def _feed(*items: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel><title>Met Office warnings</title>'
        + "".join(items)
        + "</channel></rss>"
    )


SNOW_TITLE = "Yellow warning of snow, ice affecting South West England"
SNOW_DESC = "Snow and ice may cause travel disruption. valid from 0000 Fri 02 Jan to 1200 Fri 02 Jan"


# --------------------------- region feed: title ---------------------------


@pytest.mark.parametrize(
    "title,expected",
    [
        ("Red warning of wind affecting Wales", Severity.RED),
        ("Extreme heat", Severity.RED),
        ("Amber warning of rain affecting London & South East England", Severity.AMBER),
        ("Severe gales", Severity.AMBER),
        ("Yellow warning of fog affecting East of England", Severity.YELLOW),
        ("Warning of something", Severity.YELLOW),
    ],
)
def test_title_severity(title, expected):
    assert title_severity(title) is expected


@pytest.mark.parametrize(
    "title,expected",
    [
        (SNOW_TITLE, "Snow, Ice Warning"),
        ("Amber warning of THUNDERSTORMS affecting Wales", "Thunderstorms Warning"),
        ("Yellow warning of wind", "Wind Warning"),
        ("Amber warning of rain affecting Grampian", "Rain Warning"),
        ("Yellow warning", "Weather Warning"),
        ("Yellow warning of X", "Weather Warning"),
        ("", "Weather Warning"),
    ],
)
def test_extract_event(title, expected):
    assert extract_event(title) == expected


# --------------------------- region feed: dates ---------------------------


def test_infer_year_rolls_past_dates_forward():
    today = date(2026, 10, 17)
    assert infer_year(1, 2, today) == 2027
    assert infer_year(10, 17, today) == 2026
    assert infer_year(12, 25, today) == 2026


def test_infer_year_keeps_recently_started_warnings_in_this_year():
    today = date(2026, 10, 17)
    assert infer_year(10, 16, today) == 2026
    assert infer_year(10, 10, today) == 2026
    assert infer_year(10, 9, today) == 2027
    assert infer_year(12, 31, date(2027, 1, 1)) == 2026


def test_infer_year_leap_day():
    assert infer_year(2, 29, date(2026, 10, 17)) == 2028
    assert infer_year(13, 1, date(2026, 10, 17)) is None


def test_primary_validity_pattern():
    start, end = parse_validity(SNOW_DESC, today=date(2026, 10, 17))
    assert start == datetime(2027, 1, 2, 0, 0, tzinfo=UK_TZ)
    assert end == datetime(2027, 1, 2, 12, 0, tzinfo=UK_TZ)


def test_validity_across_new_year():
    start, end = parse_validity(
        "valid from 1800 Thu 31 Dec to 0600 Fri 01 Jan", today=date(2026, 12, 30)
    )
    assert start == datetime(2026, 12, 31, 18, 0, tzinfo=UK_TZ)
    assert end == datetime(2027, 1, 1, 6, 0, tzinfo=UK_TZ)


def test_iso_fallback_two_dates():
    start, end = parse_validity(
        "Issued for 2026-11-01T06:00Z until 2026-11-02T18:00Z.", today=date(2026, 10, 17)
    )
    assert start == datetime(2026, 11, 1, 6, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 11, 2, 18, 0, tzinfo=timezone.utc)


def test_iso_fallback_single_date_is_whole_day():
    start, end = parse_validity("Expected on 2026-11-01.", today=date(2026, 10, 17))
    assert start == datetime(2026, 11, 1, 0, 0, tzinfo=UK_TZ)
    assert end == datetime(2026, 11, 1, 23, 59, 59, tzinfo=UK_TZ)


def test_no_validity_is_none():
    assert parse_validity("Heavy rain possible later.", today=date(2026, 10, 17)) is None
    assert parse_validity("", today=date(2026, 10, 17)) is None


# --------------------------- region feed: whole feed ---------------------------


def test_parse_feed_snow_ice_scenario():
    result = parse_feed(_feed(_item(SNOW_TITLE, SNOW_DESC)), today=date(2026, 10, 17))
    assert result.errors == []
    assert len(result.alerts) == 1
    a = result.alerts[0]
    assert a.severity is Severity.YELLOW
    assert a.event == "Snow, Ice Warning"
    assert a.headline == SNOW_TITLE
    assert a.source == AlertSource.METOFFICE_RSS
    assert (a.start.year, a.start.month, a.start.day, a.start.time()) == (2027, 1, 2, time(0, 0))
    assert (a.end.month, a.end.day, a.end.time()) == (1, 2, time(12, 0))


def test_parse_feed_year_is_next_upcoming_date_by_default():
    result = parse_feed(_feed(_item(SNOW_TITLE, SNOW_DESC)))
    start = result.alerts[0].start
    today = datetime.now(UK_TZ).date()
    assert start.date() >= today - timedelta(days=IN_FORCE_GRACE_DAYS)
    assert start.date() - today < timedelta(days=366)


def test_parse_feed_decodes_entities_and_strips_html():
    item = _item(
        "Amber warning of rain affecting London &amp; South East England",
        "&lt;p&gt;Flooding likely.&lt;/p&gt; valid from 0600 Sat 07 Nov to 2359 Sat 07 Nov",
    )
    a = parse_feed(_feed(item), today=date(2026, 10, 17)).alerts[0]
    assert a.event == "Rain Warning"
    assert a.severity is Severity.AMBER
    assert a.headline == "Amber warning of rain affecting London & South East England"
    assert "<p>" not in a.description and "Flooding likely." in a.description


def test_parse_feed_keeps_escaped_comparisons_as_text():
    feed = _feed(
        _item(
            "Yellow warning of rain affecting Wales",
            "Rain totals &lt; 10 mm in the west. valid from 0000 Fri 02 Jan to 1200 Fri 02 Jan. Gusts &gt; 50 mph",
        ),
        _item(
            "Amber warning of wind affecting Scotland",
            "Visibility &lt; 100 m, gusts &gt; 60 mph. valid from 0600 Sat 03 Jan to 1800 Sat 03 Jan",
        ),
    )
    result = parse_feed(feed, today=date(2026, 10, 17))
    assert [a.event for a in result.alerts] == ["Rain Warning", "Wind Warning"]
    assert result.alerts[0].description == (
        "Rain totals < 10 mm in the west. valid from 0000 Fri 02 Jan to 1200 Fri 02 Jan. Gusts > 50 mph"
    )
    assert result.alerts[1].description.startswith("Visibility < 100 m, gusts > 60 mph.")
    assert result.alerts[1].start == datetime(2027, 1, 3, 6, 0, tzinfo=UK_TZ)


def test_parse_feed_strips_html_in_cdata():
    item = _item(
        "Yellow warning of fog affecting London &amp; South East England",
        "<![CDATA[<p>Dense fog.</p><br/>valid from 0000 Fri 02 Jan to 1200 Fri 02 Jan]]>",
    )
    a = parse_feed(_feed(item), today=date(2026, 10, 17)).alerts[0]
    assert a.description == "Dense fog. valid from 0000 Fri 02 Jan to 1200 Fri 02 Jan"


def test_parse_feed_reads_namespaced_rdf_items():
    feed = (
        '<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#" '
        'xmlns="http://purl.org/rss/1.0/">'
        + _item(SNOW_TITLE, SNOW_DESC)
        + "</rdf:RDF>"
    )
    result = parse_feed(feed, today=date(2026, 10, 17))
    assert [a.event for a in result.alerts] == ["Snow, Ice Warning"]


def test_parse_feed_empty_is_valid():
    result = parse_feed(_feed(), today=date(2026, 10, 17))
    assert result.alerts == []
    assert result.errors == []
    assert result.items_seen == 0


def test_item_without_start_is_dropped_silently():
    feed = _feed(
        _item("Yellow warning of wind affecting Wales", "Gusty. No dates here."),
        _item(SNOW_TITLE, SNOW_DESC),
    )
    result = parse_feed(feed, today=date(2026, 10, 17))
    assert result.items_seen == 2
    assert [a.event for a in result.alerts] == ["Snow, Ice Warning"]
    assert result.errors == []


def test_item_failure_is_isolated(monkeypatch):
    real = rss_mod.parse_validity

    def flaky(text, today, tz=UK_TZ):
        if "BOOM" in text:
            raise ValueError("bad item")
        return real(text, today, tz)

    monkeypatch.setattr(rss_mod, "parse_validity", flaky)
    feed = _feed(
        _item("Yellow warning of wind affecting Wales", "BOOM valid from 0000 Fri 02 Jan to 1200 Fri 02 Jan"),
        _item(SNOW_TITLE, SNOW_DESC),
    )
    result = parse_feed(feed, today=date(2026, 10, 17))
    assert [a.event for a in result.alerts] == ["Snow, Ice Warning"]
    assert len(result.errors) == 1
    assert result.errors[0].index == 0
    assert "bad item" in result.errors[0].message


@pytest.mark.parametrize(
    "body",
    [
        {"features": []},
        "<html><body>Not found</body></html>",
        "<rss><channel><item><title>Rain &lt; 10 mm</title></channel></rss>",
        "Service unavailable",
        None,
    ],
)
def test_unreadable_feed_raises(body):
    with pytest.raises(ParseFailure):
        parse_feed(body)


@pytest.mark.asyncio
async def test_rss_fetch_alerts_uses_region_feed(monkeypatch):
    seen = {}

    async def fake_fetch(client, url, headers=None, params=None, timeout=10.0):
        seen["url"] = url
        return _feed(_item(SNOW_TITLE, SNOW_DESC))

    monkeypatch.setattr(rss_mod, "fetch", fake_fetch)
    alerts = await rss_mod.fetch_alerts(None, 57.5, -4.0, today=date(2026, 10, 17))
    assert seen["url"].endswith("/WarningsRSS/Region/he")
    assert len(alerts) == 1


# --------------------------- Met Office structured ---------------------------


def test_parse_warnings_maps_fields():
    payload = {
        "features": [
            {
                "properties": {
                    "warnings": [
                        {
                            "warningType": "Wind",
                            "headline": "Strong winds",
                            "description": "Gusts to 70 mph",
                            "warningLevel": "Amber",
                            "validFrom": "2026-11-01T06:00:00Z",
                            "validTo": "2026-11-01T21:00:00Z",
                        },
                        {"validFrom": "2026-11-02T00:00:00Z"},
                        {"warningType": "Rain"},
                    ]
                }
            }
        ]
    }
    out = metoffice_mod.parse_warnings(payload)
    assert len(out) == 2
    wind, generic = out
    assert wind.event == "Wind"
    assert wind.headline == "Strong winds"
    assert wind.severity is Severity.AMBER
    assert wind.start == datetime(2026, 11, 1, 6, 0, tzinfo=timezone.utc)
    assert wind.end == datetime(2026, 11, 1, 21, 0, tzinfo=timezone.utc)
    assert wind.source == AlertSource.METOFFICE
    assert generic.event == "Weather Warning"
    assert generic.severity is Severity.YELLOW
    assert generic.end == generic.start
    assert generic.description == ""


@pytest.mark.asyncio
async def test_metoffice_falls_back_to_probabilities(monkeypatch):
    sample = {
        "features": [
            {"properties": {"timeSeries": [{"time": "2026-11-01T00:00Z", "dayProbabilityOfHeavyRain": 75}]}}
        ]
    }
    captured = {}

    async def fake_fetch(client, url, headers=None, params=None, timeout=10.0):
        captured["headers"] = headers
        captured["params"] = params
        return sample

    monkeypatch.setattr(metoffice_mod, "fetch", fake_fetch)
    alerts = await metoffice_mod.fetch_alerts(None, 51.5, -0.1, "secret-key")
    assert captured["headers"]["apikey"] == "secret-key"
    assert captured["params"] == {"latitude": 51.5, "longitude": -0.1}
    assert [(a.event, a.severity) for a in alerts] == [("Heavy Rain Warning", Severity.AMBER)]


@pytest.mark.asyncio
async def test_metoffice_non_json_is_malformed(monkeypatch):
    async def fake_fetch(*args, **kwargs):
        return "<html>maintenance</html>"

    monkeypatch.setattr(metoffice_mod, "fetch", fake_fetch)
    with pytest.raises(MalformedPayload):
        await metoffice_mod.fetch_alerts(None, 51.5, -0.1, "k")


# --------------------------- Open-Meteo ---------------------------


@pytest.mark.asyncio
async def test_open_meteo_forecast_request(monkeypatch):
    captured = {}

    async def fake_fetch(client, url, headers=None, params=None, timeout=10.0):
        captured["params"] = params
        return {
            "timezone": "America/New_York",
            "utc_offset_seconds": -18000,
            "current": {"temperature_2m": 50.0, "weather_code": 0, "is_day": 0},
            "daily": {
                "time": ["2026-11-01", "2026-11-02"],
                "weather_code": [0, 95],
                "temperature_2m_max": [55.0, 60.0],
                "temperature_2m_min": [40.0, 45.0],
            },
        }

    monkeypatch.setattr(open_meteo_mod, "fetch", fake_fetch)
    current, forecast, tz = await open_meteo_mod.fetch_current_and_forecast(
        None, 40.7, -74.0, units="imperial", days=2
    )
    assert captured["params"]["temperature_unit"] == "fahrenheit"
    assert captured["params"]["wind_speed_unit"] == "mph"
    assert captured["params"]["forecast_days"] == 2
    assert current.condition == "Clear sky" and current.is_day is False
    assert [d.condition for d in forecast] == ["Clear sky", "Thunderstorm"]
    assert tz == ZoneInfo("America/New_York")


@pytest.mark.asyncio
async def test_open_meteo_alerts(monkeypatch):
    async def fake_fetch(client, url, headers=None, params=None, timeout=10.0):
        assert "wind_gusts_10m_max" in params["daily"]
        assert "wind_speed_unit" not in params
        return {
            "utc_offset_seconds": 0,
            "daily": {
                "time": ["2026-11-01"],
                "weather_code": [48],
                "wind_speed_10m_max": [20],
                "wind_gusts_10m_max": [30],
            },
        }

    monkeypatch.setattr(open_meteo_mod, "fetch", fake_fetch)
    alerts = await open_meteo_mod.fetch_alerts(None, 40.7, -74.0)
    assert [a.event for a in alerts] == ["Fog Warning"]
