"""
Geometry Kernel

Plain-Python geographic calculations over GeoJSON geometries:
- Ray-casting point-in-polygon (outer ring only)
- Vertex-average centroid
- Haversine great-circle distance
- Bounding boxes and zoom level for a viewport

GeoJSON coordinates are [longitude, latitude]; every public function here
takes latitude first.

Points exactly on a ring vertex or edge have implementation-defined
parity: the ray-casting test does not special-case them.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Sequence

from shapely.geometry import shape
from shapely.validation import explain_validity

from district_atlas.config import TEXAS_BOUNDS, TEXAS_CENTER
from district_atlas.models import Bounds, LatLng

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0

DEFAULT_BOUNDS = Bounds.from_dict(TEXAS_BOUNDS)
DEFAULT_CENTER = LatLng(**TEXAS_CENTER)


def degrees_to_radians(degrees: float) -> float:
    return degrees * (math.pi / 180)


def _point_in_ring(lat: float, lng: float, ring: Sequence[Sequence[float]]) -> bool:
    """Franklin's PNPOLY test; x is longitude, y is latitude."""
    inside = False
    n = len(ring)
    j = n - 1
    for i in range(n):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]
        if ((yi > lat) != (yj > lat)) and (lng < (xj - xi) * (lat - yi) / (yj - yi) + xi):
            inside = not inside
        j = i
    return inside


def _point_in_single_polygon(lat: float, lng: float, rings: Sequence) -> bool:
    if not rings:
        return False
    return _point_in_ring(lat, lng, rings[0])


def point_in_polygon(lat: float, lng: float, geometry: Optional[Dict[str, Any]]) -> bool:
    """
    Test whether a point falls inside a Polygon or MultiPolygon.

    Only the outer ring of each polygon is considered (holes are ignored).
    A MultiPolygon contains the point if any member polygon does.
    Unsupported or empty geometries return False.
    """
    if not geometry:
        return False
    coordinates = geometry.get("coordinates") or []
    geo_type = geometry.get("type")

    if geo_type == "Polygon":
        return _point_in_single_polygon(lat, lng, coordinates)
    if geo_type == "MultiPolygon":
        return any(_point_in_single_polygon(lat, lng, polygon) for polygon in coordinates)
    return False


def outer_ring_vertices(geometry: Optional[Dict[str, Any]]) -> List[Sequence[float]]:
    """All outer-ring vertices; MultiPolygon outer rings are concatenated."""
    if not geometry:
        return []
    coordinates = geometry.get("coordinates") or []
    geo_type = geometry.get("type")

    if geo_type == "Polygon":
        return list(coordinates[0]) if coordinates else []
    if geo_type == "MultiPolygon":
        vertices: List[Sequence[float]] = []
        for polygon in coordinates:
            if polygon:
                vertices.extend(polygon[0])
        return vertices
    return []


def centroid(geometry: Optional[Dict[str, Any]], fallback: LatLng = DEFAULT_CENTER) -> LatLng:
    """
    Arithmetic mean of all outer-ring vertices.

    This is a vertex average, not an area-weighted centroid. The closing
    vertex of a ring counts like any other.
    """
    vertices = outer_ring_vertices(geometry)
    if not vertices:
        return fallback

    sum_lat = sum(vertex[1] for vertex in vertices)
    sum_lng = sum(vertex[0] for vertex in vertices)
    return LatLng(lat=sum_lat / len(vertices), lng=sum_lng / len(vertices))


def haversine_distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres."""
    # The formula leaves floating-point noise at zero distance
    if lat1 == lat2 and lng1 == lng2:
        return 0.0

    d_lat = degrees_to_radians(lat2 - lat1)
    d_lng = degrees_to_radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(degrees_to_radians(lat1)) * math.cos(degrees_to_radians(lat2))
        * math.sin(d_lng / 2) ** 2
    )
    # Rounding can push a past 1 for near-antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def bounding_box(points: Iterable[Any], padding: float = 0.0,
                 default: Bounds = DEFAULT_BOUNDS) -> Bounds:
    """
    Min/max box over objects with `lat`/`lng` attributes, grown by `padding`
    degrees on every side. Empty input returns the default region box.
    """
    points = list(points)
    if not points:
        return default

    north = max(p.lat for p in points)
    south = min(p.lat for p in points)
    east = max(p.lng for p in points)
    west = min(p.lng for p in points)
    return Bounds(
        north=north + padding,
        south=south - padding,
        east=east + padding,
        west=west - padding,
    )


def center_of_points(points: Iterable[Any], fallback: LatLng = DEFAULT_CENTER) -> LatLng:
    """Mean position of objects with `lat`/`lng` attributes."""
    points = list(points)
    if not points:
        return fallback
    if len(points) == 1:
        return LatLng(lat=points[0].lat, lng=points[0].lng)
    return LatLng(
        lat=sum(p.lat for p in points) / len(points),
        lng=sum(p.lng for p in points) / len(points),
    )


def is_point_in_bounds(lat: float, lng: float, bounds: Bounds) -> bool:
    return bounds.contains(lat, lng)


def bounds_around(lat: float, lng: float, radius_km: float) -> Bounds:
    """Approximate box around a point; one degree of latitude is ~111 km."""
    lat_delta = radius_km / KM_PER_DEGREE
    lng_delta = radius_km / (KM_PER_DEGREE * math.cos(degrees_to_radians(lat)))
    return Bounds(
        north=lat + lat_delta,
        south=lat - lat_delta,
        east=lng + lng_delta,
        west=lng - lng_delta,
    )


def zoom_for_bounds(bounds: Bounds, min_zoom: int = 3, max_zoom: int = 18) -> int:
    """
    Logarithmic zoom heuristic: 14 - log2(span * 100), rounded half up and
    clamped to [min_zoom, max_zoom]. The larger of the two spans decides.
    """
    max_delta = max(bounds.lat_span, bounds.lng_span)
    if max_delta <= 0:
        return max_zoom

    zoom = 14 - math.log2(max_delta * 100)
    return min(max(math.floor(zoom + 0.5), min_zoom), max_zoom)


def geometry_issues(geometry: Optional[Dict[str, Any]]) -> List[str]:
    """
    Shapely diagnostics for a GeoJSON geometry (self-intersections, short
    rings). Informational only; returns an empty list for clean geometry.
    """
    if not geometry:
        return ["missing geometry"]
    try:
        geom = shape(geometry)
    except Exception as e:
        return [f"unparseable geometry: {e}"]

    if geom.is_empty:
        return ["empty geometry"]
    if not geom.is_valid:
        return [explain_validity(geom)]
    return []
