"""
Pytest configuration and shared fixtures for District Atlas tests
"""

import pytest
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

# Add project root to path
import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from district_atlas.config import AtlasConfig
from district_atlas.errors import TransportError
from district_atlas.enrichment import extract_members
from district_atlas.geometry import centroid
from district_atlas.models import Site, Zone


def square_polygon(south: float, west: float, height: float = 1.0, width: float = 1.0) -> Dict[str, Any]:
    """Closed GeoJSON Polygon ([lng, lat] pairs) covering a lat/lng box"""
    north = south + height
    east = west + width
    return {
        "type": "Polygon",
        "coordinates": [[
            [west, south],
            [east, south],
            [east, north],
            [west, north],
            [west, south],
        ]],
    }


def grid_polygon(index: int) -> Dict[str, Any]:
    """Distinct cell of a 6-wide grid laid over Texas for district `index`"""
    row, col = divmod(index - 1, 6)
    return square_polygon(26.5 + row * 1.5, -106.0 + col * 2.0, height=1.5, width=2.0)


def district_feature(index: int, state: Optional[str] = None) -> Dict[str, Any]:
    feature = {"type": "Feature", "properties": {}, "geometry": grid_polygon(index)}
    if state is not None:
        feature["properties"]["state"] = state
    return feature


class FakeFeedClient:
    """
    In-memory stand-in for FeedClient.

    Site failures are consumed one per call from `site_errors`; zone indices
    listed in `missing_zones` always fail, and `zone_features` replaces the
    feature served for an index.
    """

    def __init__(self, sites_payload=None, site_errors=None, missing_zones=(), zone_errors=None,
                 zone_features=None):
        self.sites_payload = sites_payload if sites_payload is not None else []
        self.site_errors = list(site_errors or [])
        self.missing_zones = set(missing_zones)
        self.zone_errors = zone_errors
        self.zone_features = dict(zone_features or {})
        self.site_calls = 0
        self.zone_calls: List[int] = []
        self.closed = False

    async def fetch_sites(self):
        self.site_calls += 1
        if self.site_errors:
            raise self.site_errors.pop(0)
        return self.sites_payload

    async def fetch_zone_feature(self, index: int):
        self.zone_calls.append(index)
        if self.zone_errors is not None:
            raise self.zone_errors
        if index in self.missing_zones:
            raise TransportError("HTTP 404 Not Found", status=404)
        if index in self.zone_features:
            return self.zone_features[index]
        return district_feature(index)

    async def close(self):
        self.closed = True


class FakeCongressClient:
    """In-memory stand-in for CongressClient; errors are consumed first"""

    def __init__(self, payload=None, errors=None):
        self.payload = payload if payload is not None else {"members": []}
        self.errors = list(errors or [])
        self.calls = 0
        self.closed = False

    async def fetch_members(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return extract_members(self.payload)

    async def close(self):
        self.closed = True


class SleepRecorder:
    """Fake clock: records requested delays and returns immediately"""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float):
        self.delays.append(delay)


@pytest.fixture
def config():
    """Configuration without a Congress.gov key"""
    return AtlasConfig(feed_base_url="http://feeds.test/geojson", congress_api_key=None)


@pytest.fixture
def enriched_config():
    """Configuration with enrichment enabled"""
    return AtlasConfig(feed_base_url="http://feeds.test/geojson", congress_api_key="test-key")


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def raw_sites():
    """Site feed with three valid records and two rejects"""
    return [
        {
            "name": "Austin Early Head Start Center",
            "address": "100 Congress Ave, Austin, TX",
            "coordinates": {"lat": 30.2672, "lng": -97.7431},
            "grantee": "Travis County Child Services",
            "funding": 1250000,
        },
        {
            "name": "Houston Head Start",
            "address": "900 Main St, Houston, TX",
            "coordinates": {"lat": 29.7604, "lng": -95.3698},
        },
        {
            "name": "Dallas Head Start",
            "address": "1500 Marilla St, Dallas, TX",
            "coordinates": {"lat": 32.7767, "lng": -96.7970},
            "funding": -5,
        },
        {
            "name": "Denver Head Start",
            "address": "1 Main St, Denver, CO",
            "coordinates": {"lat": 39.7392, "lng": -104.9903},
        },
        {"name": "", "address": "No Name Rd", "coordinates": {"lat": 30.0, "lng": -97.0}},
    ]


@pytest.fixture
def sample_sites():
    return [
        Site(id="program-0", name="Austin Early Head Start Center", address="100 Congress Ave, Austin, TX",
             lat=30.2672, lng=-97.7431, category="early-head-start",
             sponsor="Travis County Child Services", funding=1250000.0),
        Site(id="program-1", name="Houston Head Start", address="900 Main St, Houston, TX",
             lat=29.7604, lng=-95.3698, category="head-start", sponsor="Houston Head Start"),
        Site(id="program-2", name="Dallas Head Start", address="1500 Marilla St, Dallas, TX",
             lat=32.7767, lng=-96.7970, category="head-start", sponsor="Dallas Head Start"),
    ]


def make_zone(index: int, geometry: Optional[Dict[str, Any]] = None, representative: Optional[str] = None) -> Zone:
    geometry = geometry or grid_polygon(index)
    return Zone(
        index=index,
        name=f"Texas District {index}",
        code=f"TX-{index}",
        jurisdiction="TX",
        representative=representative or f"Representative {index}",
        geometry=geometry,
        center=centroid(geometry),
        population=750000,
    )


@pytest.fixture
def sample_zones():
    return [make_zone(index) for index in (1, 2, 7)]


@pytest.fixture
def members_payload():
    """Congress.gov member response in the `members` shape"""
    return {
        "members": [
            {
                "name": "Fletcher, Lizzie",
                "party": "D",
                "partyName": "Democratic",
                "state": "Texas",
                "district": 7,
                "depiction": {"imageUrl": "https://example.test/fletcher.jpg"},
                "contactInformation": {
                    "phoneNumber": "(202) 225-2571",
                    "websiteUrl": "https://fletcher.house.gov",
                    "officeAddress": "346 Cannon HOB",
                },
                "terms": [{"current": {"committees": [{"name": "Energy and Commerce"}]}}],
            },
            {"name": "Moran, Nathaniel", "party": "R", "state": "Texas", "district": "1"},
            {"name": "Duplicate Seven", "party": "I", "state": "Texas", "district": "7"},
            {"name": "At Large Senator", "party": "R", "state": "Texas"},
        ]
    }


@pytest.fixture
def mock_feed_client():
    """AsyncMock feed client for tests that only check call wiring"""
    mock = AsyncMock()
    mock.fetch_sites.return_value = []
    return mock
