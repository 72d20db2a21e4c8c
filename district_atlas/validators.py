"""
Entity Validators & Normalizers

Turn raw feed records into validated Site and Zone entities. Records that
fail validation are dropped (None) with a warning, never stored.

Both normalizers are pure: the same input always yields the same outcome
and output shape, and no I/O is performed beyond logging.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from district_atlas.config import AtlasConfig
from district_atlas.formatting import format_district_number
from district_atlas.geometry import centroid, is_point_in_bounds
from district_atlas.models import Bounds, LatLng, Site, Zone

logger = logging.getLogger(__name__)

SUPPORTED_GEOMETRY_TYPES = ("Polygon", "MultiPolygon")


def _is_finite_number(value: Any) -> bool:
    # bool is an int subclass; JSON true/false is never a number here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _clean_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def site_category(name: str) -> str:
    """Program category from its name; defaults to head-start."""
    return "early-head-start" if "early head start" in name.lower() else "head-start"


def normalize_site(raw: Any, position: int, config: AtlasConfig) -> Optional[Site]:
    """
    Validate one raw program record: {name, address, coordinates: {lat, lng}}.

    Args:
        raw: Record from the site feed
        position: Index of the record in the feed (used for the stable id)
        config: Provides the geographic region records must fall inside

    Returns:
        Site, or None when the record is rejected
    """
    if not isinstance(raw, dict):
        logger.warning(f"Invalid site record at position {position}: not an object")
        return None

    name = _clean_text(raw.get("name"))
    address = _clean_text(raw.get("address"))
    if not name or not address:
        logger.warning(f"Invalid site record at position {position}: missing required fields")
        return None

    coordinates = raw.get("coordinates")
    if not isinstance(coordinates, dict):
        logger.warning(f"Invalid site record '{name}': missing coordinates")
        return None

    lat = coordinates.get("lat")
    lng = coordinates.get("lng")
    if not _is_finite_number(lat) or not _is_finite_number(lng):
        logger.warning(f"Invalid site record '{name}': invalid coordinates {lat!r}, {lng!r}")
        return None

    region = Bounds.from_dict(config.region_bounds)
    if not is_point_in_bounds(lat, lng, region):
        logger.warning(f"Site outside {config.jurisdiction} bounds: {name} ({lat}, {lng})")
        return None

    funding = raw.get("funding")
    if not _is_finite_number(funding) or funding < 0:
        funding = None

    sponsor = _clean_text(raw.get("grantee")) or name

    return Site(
        id=f"program-{position}",
        name=name,
        address=address,
        lat=float(lat),
        lng=float(lng),
        category=site_category(name),
        sponsor=sponsor,
        funding=float(funding) if funding is not None else None,
    )


def normalize_sites(raw_records: Iterable[Any], config: AtlasConfig) -> List[Site]:
    """Normalize a whole feed; rejected records are simply absent."""
    sites = []
    for position, raw in enumerate(raw_records):
        site = normalize_site(raw, position, config)
        if site is not None:
            sites.append(site)
    return sites


def _is_position(vertex: Any) -> bool:
    return (
        isinstance(vertex, (list, tuple))
        and len(vertex) >= 2
        and _is_finite_number(vertex[0])
        and _is_finite_number(vertex[1])
    )


def _is_outer_ring(polygon: Any) -> bool:
    if not isinstance(polygon, list) or not polygon:
        return False
    ring = polygon[0]
    return isinstance(ring, list) and bool(ring) and all(_is_position(vertex) for vertex in ring)


def _has_outer_ring(geometry: Dict[str, Any]) -> bool:
    """Every polygon has a non-empty outer ring of [lng, lat] positions."""
    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, list) or not coordinates:
        return False
    if geometry.get("type") == "Polygon":
        polygons = [coordinates]
    else:
        polygons = coordinates
    return all(_is_outer_ring(polygon) for polygon in polygons)


def build_zone_record(index: int, feature: Dict[str, Any], config: AtlasConfig) -> Dict[str, Any]:
    """
    Raw zone record for a district feature fetched by index.

    The feed carries geometry only, so labels come from the index and the
    representative is a placeholder until enrichment.
    """
    properties = feature.get("properties") or {}
    state = properties.get("state")
    jurisdiction = state if isinstance(state, str) and state else config.jurisdiction

    return {
        "index": index,
        "name": (
            f"{config.jurisdiction_name} {format_district_number(index)} "
            f"Congressional District"
        ),
        "code": f"{config.jurisdiction}-{index}",
        "jurisdiction": jurisdiction,
        "representative": f"Representative {index}",
        "geometry": feature.get("geometry"),
    }


def normalize_zone(raw: Any, config: AtlasConfig) -> Optional[Zone]:
    """
    Validate a raw zone record and derive its centre.

    Rejects empty required fields, non-positive or non-integer indices,
    districts outside the configured jurisdiction, and geometry without a
    non-empty outer ring.
    """
    if not isinstance(raw, dict):
        logger.warning("Invalid congressional district: not an object")
        return None

    name = _clean_text(raw.get("name"))
    code = _clean_text(raw.get("code"))
    representative = _clean_text(raw.get("representative"))
    jurisdiction = _clean_text(raw.get("jurisdiction"))
    if not name or not code or not representative or not jurisdiction:
        logger.warning(f"Invalid congressional district: missing required fields ({code or name})")
        return None

    index = raw.get("index")
    if isinstance(index, bool) or not isinstance(index, int) or index < 1:
        logger.warning(f"Invalid congressional district: invalid district number {index!r}")
        return None

    if jurisdiction != config.jurisdiction:
        logger.warning(f"Congressional district not in {config.jurisdiction}: {name}")
        return None

    geometry = raw.get("geometry")
    if (
        not isinstance(geometry, dict)
        or geometry.get("type") not in SUPPORTED_GEOMETRY_TYPES
        or not _has_outer_ring(geometry)
    ):
        logger.warning(f"Invalid congressional district: missing geometry ({code})")
        return None

    fallback = LatLng(**config.fallback_center)
    return Zone(
        index=index,
        name=name,
        code=code,
        jurisdiction=jurisdiction,
        representative=representative,
        geometry=geometry,
        center=centroid(geometry, fallback),
        population=config.placeholder_population,
    )
