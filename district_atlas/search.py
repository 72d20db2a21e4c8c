"""
Search/Filter Engine

Case-insensitive substring search over sites and zones. Filters always run
against the full catalogue; layer visibility does not affect results.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from district_atlas.geometry import bounding_box
from district_atlas.models import Bounds, Site, Zone


@dataclass
class SearchOptions:
    include_sites: bool = True
    include_zones: bool = True
    min_length: int = 2
    # None keeps catalogue order
    site_order: Optional[str] = None
    zone_order: Optional[str] = None

    def __post_init__(self):
        if self.site_order is not None and self.site_order not in SITE_ORDERS:
            raise ValueError(f"Unknown site order: {self.site_order}")
        if self.zone_order is not None and self.zone_order not in ZONE_ORDERS:
            raise ValueError(f"Unknown zone order: {self.zone_order}")


@dataclass
class SearchResults:
    sites: List[Site] = field(default_factory=list)
    zones: List[Zone] = field(default_factory=list)
    active: bool = False
    total: int = 0


def _term(query: Optional[str]) -> str:
    return (query or "").strip()


def is_active(query: Optional[str], options: SearchOptions) -> bool:
    return len(_term(query)) >= options.min_length


def _matches(term: str, *values: Optional[str]) -> bool:
    return any(value is not None and term in value.lower() for value in values)


def filter_sites(sites: List[Site], query: Optional[str],
                 options: Optional[SearchOptions] = None) -> List[Site]:
    """
    Sites whose name, address or sponsor contains the query.

    Returns the input unchanged when the query is below the minimum length
    or site search is disabled.
    """
    options = options or SearchOptions()
    if not options.include_sites or not is_active(query, options):
        return sites

    term = _term(query).lower()
    return [site for site in sites if _matches(term, site.name, site.address, site.sponsor)]


def filter_zones(zones: List[Zone], query: Optional[str],
                 options: Optional[SearchOptions] = None) -> List[Zone]:
    """Zones whose label, representative, code or index contains the query."""
    options = options or SearchOptions()
    if not options.include_zones or not is_active(query, options):
        return zones

    term = _term(query).lower()
    return [
        zone for zone in zones
        if _matches(term, zone.name, zone.representative, zone.code, str(zone.index))
    ]


def search(sites: List[Site], zones: List[Zone], query: Optional[str],
           options: Optional[SearchOptions] = None) -> SearchResults:
    """
    Combined search. Inactive queries produce empty result lists and a zero
    total; entity types that are switched off contribute nothing.
    """
    options = options or SearchOptions()
    if not is_active(query, options):
        return SearchResults()

    result_sites = filter_sites(sites, query, options) if options.include_sites else []
    result_zones = filter_zones(zones, query, options) if options.include_zones else []
    if options.site_order:
        result_sites = SITE_ORDERS[options.site_order](result_sites)
    if options.zone_order:
        result_zones = ZONE_ORDERS[options.zone_order](result_zones)
    return SearchResults(
        sites=result_sites,
        zones=result_zones,
        active=True,
        total=len(result_sites) + len(result_zones),
    )


def results_bounds(results: SearchResults, padding: float = 0.0) -> Optional[Bounds]:
    """Box fitting every site hit and every zone hit's centre, or None."""
    if not results.active:
        return None
    points = list(results.sites) + [zone.center for zone in results.zones]
    if not points:
        return None
    return bounding_box(points, padding)


def sort_sites_by_name(sites: List[Site]) -> List[Site]:
    return sorted(sites, key=lambda site: site.name.lower())


def sort_zones_by_index(zones: List[Zone]) -> List[Zone]:
    return sorted(zones, key=lambda zone: zone.index)


def sort_zones_by_representative(zones: List[Zone]) -> List[Zone]:
    return sorted(zones, key=lambda zone: zone.representative.lower())


SITE_ORDERS = {"name": sort_sites_by_name}
ZONE_ORDERS = {
    "index": sort_zones_by_index,
    "representative": sort_zones_by_representative,
}


def site_stats(sites: List[Site]) -> Dict[str, Any]:
    by_category: Dict[str, int] = {}
    for site in sites:
        by_category[site.category] = by_category.get(site.category, 0) + 1
    return {
        "total": len(sites),
        "by_category": by_category,
        "bounds": bounding_box(sites) if sites else None,
    }


def zone_stats(zones: List[Zone]) -> Dict[str, Any]:
    numbers = sorted(zone.index for zone in zones)
    return {
        "total": len(zones),
        "min_index": numbers[0] if numbers else None,
        "max_index": numbers[-1] if numbers else None,
        "indices": numbers,
        "representatives": sorted(zone.representative for zone in zones),
    }
