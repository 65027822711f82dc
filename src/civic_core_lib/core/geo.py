"""Great-circle distance between coordinate pairs."""

import math

from civic_core_lib.models import GeoPoint

EARTH_RADIUS_M = 6_371_000.0


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Haversine distance in meters between two WGS84 points.

    Symmetric, and zero for identical points.
    """
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lng - a.lng)

    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # Clamp guards against rounding pushing h marginally above 1 for antipodal points
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, h)))


def within_radius(a: GeoPoint, b: GeoPoint, radius_m: float) -> bool:
    return distance_meters(a, b) <= radius_m
