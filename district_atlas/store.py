"""
Catalogue Store

The single mutable structure of the system: current sites, zones and layer
visibility. Everything else changes it only through the methods below.
"""

import logging
from typing import Dict, List, Optional

from district_atlas.config import DEFAULT_LAYER_VISIBILITY
from district_atlas.enrichment import CongressMember, merge_members
from district_atlas.geometry import (
    bounds_around,
    haversine_distance_km,
    is_point_in_bounds,
    point_in_polygon,
)
from district_atlas.models import LayerVisibility, Site, Zone

logger = logging.getLogger(__name__)


class CatalogueStore:
    """In-memory catalogue of sites and zones plus layer visibility."""

    def __init__(self, visibility: Optional[Dict[str, bool]] = None):
        self.sites: List[Site] = []
        self.zones: List[Zone] = []
        self.visibility = LayerVisibility(**(visibility or DEFAULT_LAYER_VISIBILITY))
        self._enrichment_claimed = False

    # ------------------------------------------------------------------
    # Layer visibility
    # ------------------------------------------------------------------

    def _check_layer(self, layer: str):
        if layer not in LayerVisibility.layer_names():
            raise KeyError(f"Unknown layer: {layer}")

    def toggle(self, layer: str) -> bool:
        """Flip a layer flag and return the new value."""
        self._check_layer(layer)
        visible = not getattr(self.visibility, layer)
        setattr(self.visibility, layer, visible)
        return visible

    def set_visibility(self, layer: str, visible: bool):
        self._check_layer(layer)
        setattr(self.visibility, layer, bool(visible))

    def visible_sites(self) -> List[Site]:
        return list(self.sites) if self.visibility.head_start_programs else []

    def visible_zones(self) -> List[Zone]:
        return list(self.zones) if self.visibility.congressional_districts else []

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def replace_sites(self, sites: List[Site]):
        self.sites = list(sites)
        logger.info(f"Loaded {len(self.sites)} Head Start programs")

    def replace_zones(self, zones: List[Zone]):
        self.zones = sorted(zones, key=lambda zone: zone.index)
        logger.info(f"Loaded {len(self.zones)} congressional districts")

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    @property
    def enrichment_claimed(self) -> bool:
        return self._enrichment_claimed

    def claim_enrichment(self) -> bool:
        """
        Take the one-shot enrichment slot.

        Returns False if enrichment already ran (or is running) for the
        current zones.
        """
        if self._enrichment_claimed:
            return False
        self._enrichment_claimed = True
        return True

    def reset_enrichment(self):
        self._enrichment_claimed = False

    def merge_enrichment(self, members: List[CongressMember]) -> int:
        matched = merge_members(self.zones, members)
        logger.info(f"Updated {matched}/{len(self.zones)} congressional districts with representative data")
        return matched

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def zone_at(self, lat: float, lng: float) -> Optional[Zone]:
        """First zone (by index) whose geometry contains the point."""
        for zone in self.zones:
            if point_in_polygon(lat, lng, zone.geometry):
                return zone
        return None

    def zone_by_index(self, index: int) -> Optional[Zone]:
        return next((zone for zone in self.zones if zone.index == index), None)

    def site_by_id(self, site_id: str) -> Optional[Site]:
        return next((site for site in self.sites if site.id == site_id), None)

    def sites_within(self, lat: float, lng: float, radius_km: float) -> List[Site]:
        """Sites within a great-circle radius, pre-filtered by a bounding box."""
        # The box is approximate; widen it so the exact distance decides
        box = bounds_around(lat, lng, radius_km * 1.1)
        return [
            site for site in self.sites
            if is_point_in_bounds(site.lat, site.lng, box)
            and haversine_distance_km(lat, lng, site.lat, site.lng) <= radius_km
        ]
