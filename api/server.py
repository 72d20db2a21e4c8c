"""
District Atlas API
Read-only catalogue snapshot plus layer, retry, search and containment
operations for the map front end.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from district_atlas.config import AtlasConfig, validate_config
from district_atlas.formatting import (
    format_coordinate,
    format_funding,
    format_number,
    parse_coordinate_string,
)
from district_atlas.models import Bounds, Site, Zone
from district_atlas.search import SearchOptions
from district_atlas.service import AtlasService, Viewport

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]

# === Response Models ===

class PointOut(BaseModel):
    lat: float
    lng: float

class BoundsOut(BaseModel):
    north: float
    south: float
    east: float
    west: float

class SiteOut(BaseModel):
    id: str
    name: str
    address: str
    lat: float
    lng: float
    category: str
    sponsor: Optional[str] = None
    funding: Optional[float] = None
    funding_display: str
    position_display: str

class ContactOut(BaseModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    office: Optional[str] = None

class ZoneOut(BaseModel):
    index: int
    name: str
    code: str
    representative: str
    party: Optional[str] = None
    photo_url: Optional[str] = None
    contact: Optional[ContactOut] = None
    committees: List[str] = []
    population: int
    population_display: str
    center: PointOut
    geometry: Optional[Dict] = None

class SnapshotResponse(BaseModel):
    sites: List[SiteOut]
    zones: List[ZoneOut]
    visible_site_ids: List[str]
    visible_zone_indices: List[int]
    layer_visibility: Dict[str, bool]
    loading: Dict[str, bool]
    errors: Dict[str, Optional[str]]
    has_errors: bool
    is_loading: bool

class LayerUpdate(BaseModel):
    visible: bool

class LayerResponse(BaseModel):
    layer: str
    visible: bool

class ViewportOut(BaseModel):
    bounds: BoundsOut
    center: PointOut
    zoom: int
    map_type: str

class SearchResponse(BaseModel):
    query: str
    active: bool
    total: int
    sites: List[SiteOut]
    zones: List[ZoneOut]
    viewport: Optional[ViewportOut] = None

class RetryResponse(BaseModel):
    retrying: List[str]
    errors: Dict[str, Optional[str]]
    has_errors: bool
    timestamp: str

class SiteStatsOut(BaseModel):
    total: int
    by_category: Dict[str, int]
    bounds: Optional[BoundsOut] = None

class ZoneStatsOut(BaseModel):
    total: int
    min_index: Optional[int] = None
    max_index: Optional[int] = None
    indices: List[int]
    representatives: List[str]

class StatsResponse(BaseModel):
    sites: SiteStatsOut
    zones: ZoneStatsOut


def site_out(site: Site) -> SiteOut:
    return SiteOut(
        id=site.id,
        name=site.name,
        address=site.address,
        lat=site.lat,
        lng=site.lng,
        category=site.category,
        sponsor=site.sponsor,
        funding=site.funding,
        funding_display=format_funding(site.funding),
        position_display=f"{format_coordinate(site.lat, 'lat')}, {format_coordinate(site.lng, 'lng')}",
    )


def zone_out(zone: Zone, include_geometry: bool = False) -> ZoneOut:
    contact = None
    if zone.contact is not None:
        contact = ContactOut(
            phone=zone.contact.phone,
            email=zone.contact.email,
            website=zone.contact.website,
            office=zone.contact.office,
        )
    return ZoneOut(
        index=zone.index,
        name=zone.name,
        code=zone.code,
        representative=zone.representative,
        party=zone.party,
        photo_url=zone.photo_url,
        contact=contact,
        committees=list(zone.committees),
        population=zone.population,
        population_display=format_number(zone.population),
        center=PointOut(lat=zone.center.lat, lng=zone.center.lng),
        geometry=zone.geometry if include_geometry else None,
    )


def bounds_out(bounds: Bounds) -> BoundsOut:
    return BoundsOut(north=bounds.north, south=bounds.south, east=bounds.east, west=bounds.west)


def viewport_out(viewport: Viewport) -> ViewportOut:
    return ViewportOut(
        bounds=bounds_out(viewport.bounds),
        center=PointOut(lat=viewport.center.lat, lng=viewport.center.lng),
        zoom=viewport.zoom,
        map_type=viewport.map_type,
    )


def create_app(service: Optional[AtlasService] = None, load_on_startup: bool = True) -> FastAPI:
    """
    Build the API around an AtlasService.

    Without an injected service one is created from the environment at
    startup. Initial loading runs in the background so the API is
    responsive while feeds are fetched.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        atlas = service
        if atlas is None:
            config = AtlasConfig.from_env()
            report = validate_config(config)
            for warning in report["warnings"]:
                logger.warning(f"Configuration: {warning}")
            for error in report["errors"]:
                logger.error(f"Configuration: {error}")
            atlas = AtlasService(config)
        app.state.atlas = atlas

        load_task = asyncio.create_task(atlas.load_all()) if load_on_startup else None
        try:
            yield
        finally:
            if load_task is not None and not load_task.done():
                load_task.cancel()
            await atlas.close()

    app = FastAPI(
        title="District Atlas",
        description="Head Start programs and congressional districts for map rendering",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if service is not None:
        app.state.atlas = service

    def atlas() -> AtlasService:
        return app.state.atlas

    @app.get("/health")
    async def health_check():
        """Service health and per-source load status"""
        snapshot = atlas().snapshot()
        return {
            "service": "District Atlas",
            "status": "degraded" if snapshot.has_errors else "healthy",
            "sites": len(snapshot.sites),
            "zones": len(snapshot.zones),
            "loading": snapshot.loading,
            "timestamp": datetime.now().isoformat(),
        }

    @app.get("/api/snapshot", response_model=SnapshotResponse)
    async def get_snapshot():
        snapshot = atlas().snapshot()
        return SnapshotResponse(
            sites=[site_out(site) for site in snapshot.sites],
            zones=[zone_out(zone) for zone in snapshot.zones],
            visible_site_ids=[site.id for site in snapshot.visible_sites],
            visible_zone_indices=[zone.index for zone in snapshot.visible_zones],
            layer_visibility=snapshot.layer_visibility,
            loading=snapshot.loading,
            errors=snapshot.errors,
            has_errors=snapshot.has_errors,
            is_loading=snapshot.is_loading,
        )

    @app.post("/api/layers/{layer}/toggle", response_model=LayerResponse)
    async def toggle_layer(layer: str):
        try:
            visible = atlas().toggle_layer(layer)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Unknown layer: {layer}")
        return LayerResponse(layer=layer, visible=visible)

    @app.put("/api/layers/{layer}", response_model=LayerResponse)
    async def set_layer(layer: str, update: LayerUpdate):
        try:
            atlas().set_layer_visibility(layer, update.visible)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Unknown layer: {layer}")
        return LayerResponse(layer=layer, visible=update.visible)

    @app.post("/api/retry", response_model=RetryResponse)
    async def retry_loading(background_tasks: BackgroundTasks, wait: bool = False):
        """
        Retry every data source that currently reports an error.

        The retry runs after the response is sent, so the response reflects
        the state when it started; pass `wait=true` to respond once it has
        settled.
        """
        retrying = atlas().failed_channels()
        if wait:
            await atlas().retry_all()
        elif retrying:
            background_tasks.add_task(atlas().retry_all)

        snapshot = atlas().snapshot()
        return RetryResponse(
            retrying=retrying,
            errors=snapshot.errors,
            has_errors=snapshot.has_errors,
            timestamp=datetime.now().isoformat(),
        )

    @app.get("/api/search", response_model=SearchResponse)
    async def search(
        q: str = "",
        include_sites: bool = True,
        include_zones: bool = True,
        min_length: int = Query(2, ge=1),
        sort_sites: Optional[str] = None,
        sort_zones: Optional[str] = None,
    ):
        try:
            options = SearchOptions(
                include_sites=include_sites,
                include_zones=include_zones,
                min_length=min_length,
                site_order=sort_sites,
                zone_order=sort_zones,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        results = atlas().search(q, options)
        viewport = atlas().search_viewport(results, padding=0.1)
        return SearchResponse(
            query=q,
            active=results.active,
            total=results.total,
            sites=[site_out(site) for site in results.sites],
            zones=[zone_out(zone) for zone in results.zones],
            viewport=viewport_out(viewport) if viewport else None,
        )

    @app.get("/api/zones/at", response_model=ZoneOut)
    async def zone_at(
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        point: Optional[str] = None,
    ):
        """Which district contains a coordinate (`lat`/`lng` or `point=lat,lng`)"""
        if point is not None:
            parsed = parse_coordinate_string(point)
            if parsed is None:
                raise HTTPException(status_code=400, detail=f"Malformed point: {point!r}")
            lat, lng = parsed.lat, parsed.lng
        if lat is None or lng is None:
            raise HTTPException(status_code=400, detail="Provide lat and lng, or point")

        zone = atlas().zone_at(lat, lng)
        if zone is None:
            raise HTTPException(status_code=404, detail="No district contains this point")
        return zone_out(zone)

    @app.get("/api/zones/{index}", response_model=ZoneOut)
    async def get_zone(index: int):
        zone = atlas().store.zone_by_index(index)
        if zone is None:
            raise HTTPException(status_code=404, detail=f"District {index} not loaded")
        return zone_out(zone, include_geometry=True)

    @app.get("/api/sites/nearby", response_model=List[SiteOut])
    async def sites_nearby(lat: float, lng: float, radius_km: float = Query(25.0, gt=0)):
        return [site_out(site) for site in atlas().store.sites_within(lat, lng, radius_km)]

    @app.get("/api/sites/{site_id}", response_model=SiteOut)
    async def get_site(site_id: str):
        site = atlas().site_by_id(site_id)
        if site is None:
            raise HTTPException(status_code=404, detail=f"Program {site_id} not loaded")
        return site_out(site)

    @app.get("/api/stats", response_model=StatsResponse)
    async def get_stats():
        """Catalogue summary: site categories and extent, loaded district numbers"""
        stats = atlas().stats()
        site_bounds = stats["sites"]["bounds"]
        return StatsResponse(
            sites=SiteStatsOut(
                total=stats["sites"]["total"],
                by_category=stats["sites"]["by_category"],
                bounds=bounds_out(site_bounds) if site_bounds else None,
            ),
            zones=ZoneStatsOut(**stats["zones"]),
        )

    @app.get("/api/viewport", response_model=ViewportOut)
    async def get_viewport(padding: float = Query(0.0, ge=0)):
        return viewport_out(atlas().viewport(padding=padding))

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
