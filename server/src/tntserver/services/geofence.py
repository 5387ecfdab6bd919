"""Geofencing helpers: did a scan happen at the box's destination school?"""

from __future__ import annotations

import math
from typing import Mapping, Optional

EARTH_RADIUS_M = 6_371_000.0
DEFAULT_RADIUS_M = 1000.0


def _coord(point: Mapping, key: str) -> Optional[float]:
    value = point.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def haversine_m(a: Mapping, b: Mapping) -> float:
    """Great-circle distance in metres between two {latitude, longitude} points."""
    lat1, lon1 = math.radians(a["latitude"]), math.radians(a["longitude"])
    lat2, lon2 = math.radians(b["latitude"]), math.radians(b["longitude"])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def is_final_destination(
    school: Mapping,
    scan: Mapping,
    radius_m: float = DEFAULT_RADIUS_M,
) -> bool:
    points = []
    for point in (school, scan):
        lat, lon = _coord(point, "latitude"), _coord(point, "longitude")
        if lat is None or lon is None:
            return False
        points.append({"latitude": lat, "longitude": lon})
    return haversine_m(points[0], points[1]) <= radius_m


def school_coords(box: Optional[Mapping]) -> dict:
    if not box:
        return {}
    return {"latitude": box.get("schoolLatitude"), "longitude": box.get("schoolLongitude")}


def scan_coords(scan: Mapping) -> dict:
    coords = ((scan.get("location") or {}).get("coords")) or {}
    return {"latitude": coords.get("latitude"), "longitude": coords.get("longitude")}
