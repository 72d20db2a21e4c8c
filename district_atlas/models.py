"""
Catalogue entities: point sites, polygonal zones and supporting value types.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

SITE_CATEGORIES = ("head-start", "early-head-start")


@dataclass(frozen=True)
class LatLng:
    """A WGS84 coordinate."""
    lat: float
    lng: float


@dataclass(frozen=True)
class Bounds:
    """Geographic bounding box in decimal degrees."""
    north: float
    south: float
    east: float
    west: float

    def contains(self, lat: float, lng: float) -> bool:
        """Check if point is within bounding box (edges inclusive)."""
        return self.south <= lat <= self.north and self.west <= lng <= self.east

    @property
    def lat_span(self) -> float:
        return self.north - self.south

    @property
    def lng_span(self) -> float:
        return self.east - self.west

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "Bounds":
        return cls(north=data["north"], south=data["south"], east=data["east"], west=data["west"])


@dataclass(frozen=True)
class Site:
    """A Head Start program location. Immutable once loaded."""
    id: str
    name: str
    address: str
    lat: float
    lng: float
    category: str  # head-start, early-head-start
    sponsor: Optional[str] = None
    funding: Optional[float] = None


@dataclass
class ZoneContact:
    """Representative office contact block; every field independently optional."""
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    office: Optional[str] = None


@dataclass
class Zone:
    """
    A congressional district.

    Geometry holds GeoJSON coordinates ([lng, lat] pairs). Enrichment fields
    are filled in place by the representative merge, matched on `index`.
    """
    index: int
    name: str
    code: str  # e.g. TX-7
    jurisdiction: str
    representative: str
    geometry: Dict[str, Any]
    center: LatLng
    population: int

    # Enrichment
    party: Optional[str] = None
    photo_url: Optional[str] = None
    contact: Optional[ZoneContact] = None
    committees: List[str] = field(default_factory=list)


@dataclass
class LayerVisibility:
    """Boolean visibility flag per map layer."""
    major_cities: bool = False
    congressional_districts: bool = False
    district_boundaries: bool = False
    counties: bool = False
    head_start_programs: bool = True

    @classmethod
    def layer_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def as_dict(self) -> Dict[str, bool]:
        return {name: getattr(self, name) for name in self.layer_names()}
