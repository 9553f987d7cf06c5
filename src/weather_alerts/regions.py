# src/weather_alerts/regions.py
"""
Coordinate -> Met Office warnings region code.

The Met Office publishes one warnings feed per region code. Regions are
approximated by an ORDERED list of lon/lat bounding boxes; boxes overlap, so
the first box that covers the point wins and the order below must be kept.
Points outside every box fall back to the nationwide feed ("UK").

`is_uk` is the coarse region-detection heuristic that decides whether the
Met Office sources are tried at all.
"""

from __future__ import annotations

from typing import List, Tuple

from shapely.geometry import Point, box
from shapely.geometry.base import BaseGeometry

UK_DEFAULT_REGION = "UK"

# (min_lon, min_lat, max_lon, max_lat, code)
REGION_BOXES: List[Tuple[float, float, float, float, str]] = [
    (-3.5, 58.65, -0.5, 61.0, "os"),    # Orkney & Shetland
    (-8.0, 56.5, -3.0, 58.7, "he"),     # Highland & Eilean Siar
    (-3.8, 56.75, -1.7, 57.75, "gr"),   # Grampian
    (-4.7, 56.0, -2.5, 56.9, "ta"),     # Central, Tayside & Fife
    (-6.5, 55.0, -4.0, 56.5, "st"),     # Strathclyde
    (-5.2, 54.6, -1.9, 56.1, "dg"),     # Dumfries, Galloway, Lothian & Borders
    (-8.2, 54.0, -5.4, 55.35, "ni"),    # Northern Ireland
    (-3.7, 53.3, -2.0, 55.2, "nw"),     # North West England
    (-2.7, 54.4, -1.0, 55.8, "ne"),     # North East England
    (-2.6, 53.3, 0.2, 54.6, "yh"),      # Yorkshire & Humber
    (-5.4, 51.35, -2.65, 53.45, "wl"),  # Wales
    (-3.25, 51.8, -1.15, 53.25, "wm"),  # West Midlands
    (-1.95, 50.5, 1.5, 51.95, "se"),    # London & South East England
    # East of England is checked before East Midlands where they overlap (the Fens).
    (-0.75, 51.45, 1.8, 53.0, "ee"),    # East of England
    (-2.05, 52.0, 0.4, 53.65, "em"),    # East Midlands
    (-6.5, 49.8, -1.5, 51.75, "sw"),    # South West England
]

# UK envelope: lat 49.5..61, lon -8.5..2
UK_BOUNDS = box(-8.5, 49.5, 2.0, 61.0)

_REGION_SHAPES: List[Tuple[BaseGeometry, str]] = [
    (box(x0, y0, x1, y1), code) for x0, y0, x1, y1, code in REGION_BOXES
]


def region_code_for(lat: float, lon: float) -> str:
    pt = Point(lon, lat)
    for shape, code in _REGION_SHAPES:
        if shape.covers(pt):
            return code
    return UK_DEFAULT_REGION


def is_uk(lat: float, lon: float) -> bool:
    return UK_BOUNDS.covers(Point(lon, lat))
