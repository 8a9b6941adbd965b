from pyproj import Geod
import math
from typing import Tuple
import numpy as np

from core.models import GeoCoordinate, Zone, ZoneCorners

# WGS84 equatorial radius (meters)
EARTH_RADIUS_M = 6378137.0

# Global Geod object to avoid repeated initialization
_geod_instance = None


def get_geod_instance():
    """Get or create a global Geod instance for distance calculations"""
    global _geod_instance
    if _geod_instance is None:
        _geod_instance = Geod(ellps='WGS84')
    return _geod_instance


def _meters_to_latitude(meters: float) -> float:
    return meters / EARTH_RADIUS_M * (180 / math.pi)


def _meters_to_longitude(meters: float, latitude: float) -> float:
    radius_at_latitude = EARTH_RADIUS_M * math.cos(math.radians(latitude))
    return meters / radius_at_latitude * (180 / math.pi)


def compute_corners(center: GeoCoordinate, width_meters: float, length_meters: float) -> ZoneCorners:
    """
    Derive the four corners of a rectangular zone from its center and size.

    Uses a local equirectangular approximation. No safety margin is added.

    Args:
        center: Zone center
        width_meters: East-west extent in meters
        length_meters: North-south extent in meters

    Returns:
        ZoneCorners labeled NE/NW/SE/SW
    """
    if width_meters <= 0 or length_meters <= 0:
        raise ValueError(f"Zone dimensions must be positive, got {width_meters} x {length_meters}")

    lat_offset = _meters_to_latitude(length_meters / 2)
    lng_offset = _meters_to_longitude(width_meters / 2, center.latitude)

    return ZoneCorners(
        north_east=GeoCoordinate(center.latitude + lat_offset, center.longitude + lng_offset),
        north_west=GeoCoordinate(center.latitude + lat_offset, center.longitude - lng_offset),
        south_east=GeoCoordinate(center.latitude - lat_offset, center.longitude + lng_offset),
        south_west=GeoCoordinate(center.latitude - lat_offset, center.longitude - lng_offset),
    )


def is_inside(point: GeoCoordinate, corners: ZoneCorners) -> bool:
    """
    Ray-casting point-in-polygon test over the NW, NE, SE, SW ring.

    A horizontal ray is cast eastward from the point. Edges count when they
    straddle the point's latitude half-open (one vertex strictly north, the
    other at or south of it), so points on the south and west edges are
    inside while points on the north and east edges are outside. Adjacent
    zones therefore never both claim a shared edge.
    """
    polygon = corners.ring()
    lat = point.latitude
    lng = point.longitude
    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        vi = polygon[i]
        vj = polygon[j]
        if (vi.latitude > lat) != (vj.latitude > lat):
            crossing_lng = (vj.longitude - vi.longitude) * (lat - vi.latitude) / (vj.latitude - vi.latitude) + vi.longitude
            if lng < crossing_lng:
                inside = not inside
        j = i
    return inside


def distance_meters(a: GeoCoordinate, b: GeoCoordinate) -> float:
    """Great-circle (haversine) distance in meters"""
    lat1, lng1, lat2, lng2 = np.radians([a.latitude, a.longitude, b.latitude, b.longitude])
    d_lat = lat2 - lat1
    d_lng = lng2 - lng1
    h = np.sin(d_lat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(d_lng / 2) ** 2
    h = np.clip(h, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))
    return float(EARTH_RADIUS_M * c)


def geodesic_distance(a: GeoCoordinate, b: GeoCoordinate) -> float:
    """Ellipsoidal (WGS84) distance in meters between two coordinates."""
    _, _, distance = get_geod_instance().inv(a.longitude, a.latitude, b.longitude, b.latitude)
    return float(distance)


def calculate_center(corners: ZoneCorners) -> GeoCoordinate:
    """Mean of the four corners."""
    ring = corners.ring()
    return GeoCoordinate(
        float(np.mean([c.latitude for c in ring])),
        float(np.mean([c.longitude for c in ring])),
    )


def measure_zone(corners: ZoneCorners) -> Tuple[float, float]:
    """Return (width, length) in meters measured on the WGS84 ellipsoid."""
    width = geodesic_distance(corners.north_west, corners.north_east)
    length = geodesic_distance(corners.north_east, corners.south_east)
    return width, length


def expand_boundaries(corners: ZoneCorners, margin_meters: float) -> ZoneCorners:
    """
    Rebuild corners with a margin added on every side.

    For administrative previews only; presence verification uses exact boundaries.
    """
    if margin_meters < 0:
        raise ValueError("margin_meters must not be negative")
    width, length = measure_zone(corners)
    return compute_corners(
        calculate_center(corners),
        width + margin_meters * 2,
        length + margin_meters * 2,
    )


def distance_from_zone(point: GeoCoordinate, zone: Zone) -> float:
    """Great-circle distance from a point to the zone center, in meters."""
    return distance_meters(point, zone.center)
