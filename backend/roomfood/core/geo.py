import math
from collections import namedtuple
from typing import Iterable, List, Optional, Sequence

EARTH_RADIUS_KM = 6371.0

# A candidate paired with its distance from the query point
Nearby = namedtuple("Nearby", ["item", "distance"])


def haversine(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in km between two points given in degrees."""
    φ1, φ2 = math.radians(lat1), math.radians(lat2)
    Δφ = math.radians(lat2 - lat1)
    Δλ = math.radians(lng2 - lng1)
    a = math.sin(Δφ / 2) ** 2 + math.cos(φ1) * math.cos(φ2) * math.sin(Δλ / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_to(item, lat: float, lng: float) -> float:
    """Distance from (lat, lng) to an object exposing ``lat``/``lng``.

    Objects without both coordinates are infinitely far away.
    """
    item_lat = getattr(item, "lat", None)
    item_lng = getattr(item, "lng", None)
    if item_lat is None or item_lng is None:
        return math.inf
    return haversine(lat, lng, item_lat, item_lng)


def filter_by_radius(
    items: Iterable,
    lat: float,
    lng: float,
    radius_km: float,
) -> List[Nearby]:
    """
    Linear scan of ``items`` keeping those within ``radius_km`` of the point,
    nearest first. ``sorted`` is stable, so equal distances keep input order.
    """
    scored = [Nearby(item, distance_to(item, lat, lng)) for item in items]
    within = [n for n in scored if n.distance <= radius_km]
    return sorted(within, key=lambda n: n.distance)


def parse_query_coordinate(value: Optional[str]) -> Optional[float]:
    """Parse a query-string coordinate, returning None for blanks and garbage."""
    if value is None or str(value).strip() == "":
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    return parsed


def nearest_first(items: Sequence, lat: Optional[float], lng: Optional[float], radius_km: float) -> List[Nearby]:
    """Apply the radius filter only when both coordinates are present."""
    if lat is None or lng is None:
        return [Nearby(item, None) for item in items]
    return filter_by_radius(items, lat, lng, radius_km)
