"""
Atlas Service

Wires the three resilient loaders (sites, zones, enrichment) to the
catalogue store and exposes the consumer-facing surface: snapshot, layer
toggles, retry, search, containment and viewport.

PIPELINE:
1. Sites and zones load concurrently and independently
2. Zones are fetched one feature per district index (scatter-gather);
   a failed index is logged and skipped, the batch fails only if none load
3. A successful zone load completes into the store, which then triggers
   representative enrichment at most once
4. Each channel keeps its own LoadState and is retried independently
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from district_atlas.config import AtlasConfig
from district_atlas.enrichment import CongressMember
from district_atlas.errors import EmptyResultError
from district_atlas.formatting import map_type_for_zoom
from district_atlas.geometry import (
    bounding_box,
    center_of_points,
    geometry_issues,
    zoom_for_bounds,
)
from district_atlas.loader import ResilientLoader, Sleep
from district_atlas.models import Bounds, LatLng, Site, Zone
from district_atlas.search import (
    SearchOptions,
    SearchResults,
    results_bounds,
    search,
    site_stats,
    zone_stats,
)
from district_atlas.store import CatalogueStore
from district_atlas.validators import build_zone_record, normalize_sites, normalize_zone
from integrations.congress import CongressClient
from integrations.feeds import FeedClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogueSnapshot:
    """Read-only view of the catalogue for the render boundary"""
    sites: Tuple[Site, ...]
    zones: Tuple[Zone, ...]
    visible_sites: Tuple[Site, ...]
    visible_zones: Tuple[Zone, ...]
    layer_visibility: Dict[str, bool]
    loading: Dict[str, bool]
    errors: Dict[str, Optional[str]]

    @property
    def has_errors(self) -> bool:
        return any(message is not None for message in self.errors.values())

    @property
    def is_loading(self) -> bool:
        return any(self.loading.values())


@dataclass(frozen=True)
class Viewport:
    bounds: Bounds
    center: LatLng
    zoom: int
    map_type: str


class AtlasService:
    """
    District Atlas data service.

    Usage:
        service = AtlasService(AtlasConfig.from_env())
        await service.load_all()
        snapshot = service.snapshot()
        results = service.search("austin")
        await service.close()
    """

    def __init__(
        self,
        config: AtlasConfig,
        feed_client: Optional[FeedClient] = None,
        congress_client: Optional[CongressClient] = None,
        store: Optional[CatalogueStore] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self.store = store or CatalogueStore()
        self.feeds = feed_client or FeedClient(config)
        self._congress = congress_client

        retry_policy = {
            "max_retries": config.max_retries,
            "base_delay": config.retry_base_delay,
            "sleep": sleep,
        }
        self.sites_loader = ResilientLoader(
            "sites", "Head Start programs", self._fetch_sites,
            on_success=self._on_sites_loaded, **retry_policy,
        )
        self.zones_loader = ResilientLoader(
            "zones", "congressional districts", self._fetch_zones,
            on_success=self._on_zones_loaded, **retry_policy,
        )
        self.enrichment_loader = ResilientLoader(
            "enrichment", "congressional", self._fetch_members,
            on_success=self._on_members_loaded, **retry_policy,
        )

    @property
    def loaders(self) -> Dict[str, ResilientLoader]:
        return {
            "sites": self.sites_loader,
            "zones": self.zones_loader,
            "enrichment": self.enrichment_loader,
        }

    # ------------------------------------------------------------------
    # Fetch steps
    # ------------------------------------------------------------------

    async def _fetch_sites(self) -> List[Site]:
        raw_records = await self.feeds.fetch_sites()
        sites = normalize_sites(raw_records, self.config)
        if not sites:
            raise EmptyResultError("No valid Head Start programs found in the data")
        return sites

    async def _fetch_zone(self, index: int) -> Optional[Zone]:
        code = f"{self.config.jurisdiction}-{index}"
        try:
            feature = await self.feeds.fetch_zone_feature(index)
            zone = normalize_zone(build_zone_record(index, feature, self.config), self.config)
        except Exception as e:
            logger.warning(f"Failed to load district {code}: {e}")
            return None

        if zone is None:
            return None

        issues = geometry_issues(zone.geometry)
        if issues:
            logger.warning(f"District {code} geometry issues: {'; '.join(issues)}")
        return zone

    async def _fetch_zones(self) -> List[Zone]:
        indices = range(1, self.config.expected_zones + 1)
        results = await asyncio.gather(*(self._fetch_zone(index) for index in indices))
        zones = [zone for zone in results if zone is not None]
        if not zones:
            raise EmptyResultError("No valid congressional districts found in the data")
        if len(zones) < self.config.expected_zones:
            logger.warning(f"Loaded {len(zones)} of {self.config.expected_zones} districts")
        return zones

    async def _fetch_members(self) -> List[CongressMember]:
        members = await self._congress_client().fetch_members()
        if not members:
            raise EmptyResultError("Congress.gov returned no members")
        return members

    def _congress_client(self) -> CongressClient:
        if self._congress is None:
            self._congress = CongressClient(self.config)
        return self._congress

    # ------------------------------------------------------------------
    # Completion handlers
    # ------------------------------------------------------------------

    async def _on_sites_loaded(self, sites: List[Site]):
        self.store.replace_sites(sites)

    async def _on_zones_loaded(self, zones: List[Zone]):
        self.store.replace_zones(zones)
        await self.enrich()

    async def _on_members_loaded(self, members: List[CongressMember]):
        self.store.merge_enrichment(members)
        logger.info("Successfully updated congressional districts with representative data")

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def load_all(self):
        """Load sites and zones concurrently; enrichment follows zones."""
        await asyncio.gather(self.sites_loader.run(), self.zones_loader.run())

    async def enrich(self) -> bool:
        """
        Run representative enrichment if it is due.

        Skipped silently without an API key. Requires a settled zone load
        with districts present, and runs at most once until reset.
        """
        if not self.config.enrichment_enabled:
            logger.info("Congress.gov API key not found - skipping enhanced congressional data")
            return False

        zones_state = self.zones_loader.state
        if not zones_state.succeeded or zones_state.retry_count != 0 or not self.store.zones:
            return False

        if not self.store.claim_enrichment():
            return False

        members = await self.enrichment_loader.run()
        return members is not None

    def failed_channels(self) -> List[str]:
        return [name for name, loader in self.loaders.items() if loader.state.error]

    async def retry_all(self):
        """Retry every channel that currently reports an error."""
        failed = self.failed_channels()
        tasks = []
        if "sites" in failed:
            tasks.append(self.sites_loader.retry())
        if "zones" in failed:
            tasks.append(self.zones_loader.retry())
        if "enrichment" in failed:
            self.enrichment_loader.reset()
            self.store.reset_enrichment()
            tasks.append(self.enrich())

        if tasks:
            logger.info(f"Retrying {len(tasks)} failed data source(s)")
            await asyncio.gather(*tasks)

    # ------------------------------------------------------------------
    # Consumer surface
    # ------------------------------------------------------------------

    def snapshot(self) -> CatalogueSnapshot:
        return CatalogueSnapshot(
            sites=tuple(self.store.sites),
            zones=tuple(self.store.zones),
            visible_sites=tuple(self.store.visible_sites()),
            visible_zones=tuple(self.store.visible_zones()),
            layer_visibility=self.store.visibility.as_dict(),
            loading={name: loader.state.loading for name, loader in self.loaders.items()},
            errors={name: loader.state.error for name, loader in self.loaders.items()},
        )

    def toggle_layer(self, layer: str) -> bool:
        return self.store.toggle(layer)

    def set_layer_visibility(self, layer: str, visible: bool):
        self.store.set_visibility(layer, visible)

    def search(self, query: str, options: Optional[SearchOptions] = None) -> SearchResults:
        return search(self.store.sites, self.store.zones, query, options)

    def zone_at(self, lat: float, lng: float) -> Optional[Zone]:
        return self.store.zone_at(lat, lng)

    def site_by_id(self, site_id: str) -> Optional[Site]:
        return self.store.site_by_id(site_id)

    def stats(self) -> Dict[str, Dict[str, Any]]:
        """Summary counts over the full catalogue, ignoring layer visibility."""
        return {
            "sites": site_stats(self.store.sites),
            "zones": zone_stats(self.store.zones),
        }

    def viewport(self, points: Optional[Iterable[Any]] = None, padding: float = 0.0) -> Viewport:
        """
        Bounds, centre, zoom and base map type framing the given points
        (default: every site and every zone centre).
        """
        if points is None:
            points = list(self.store.sites) + [zone.center for zone in self.store.zones]
        points = list(points)
        bounds = bounding_box(points, padding, default=Bounds.from_dict(self.config.region_bounds))
        zoom = zoom_for_bounds(bounds)
        return Viewport(
            bounds=bounds,
            center=center_of_points(points, LatLng(**self.config.fallback_center)),
            zoom=zoom,
            map_type=map_type_for_zoom(zoom),
        )

    def search_viewport(self, results: SearchResults, padding: float = 0.0) -> Optional[Viewport]:
        if results_bounds(results) is None:
            return None
        return self.viewport(list(results.sites) + [zone.center for zone in results.zones], padding)

    async def close(self):
        await self.feeds.close()
        if self._congress is not None:
            await self._congress.close()
