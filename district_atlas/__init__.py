"""
District Atlas

In-memory catalogue of Head Start program sites and congressional district
zones, loaded from GeoJSON feeds with resilient retries and enriched with
Congress.gov representative data.
"""

from .config import AtlasConfig, validate_config
from .errors import AtlasError, EmptyResultError, ErrorKind, FormatError, TransportError
from .loader import LoadPhase, LoadState, ResilientLoader
from .models import Bounds, LatLng, LayerVisibility, Site, Zone, ZoneContact
from .search import SearchOptions, SearchResults
from .service import AtlasService, CatalogueSnapshot, Viewport
from .store import CatalogueStore

__all__ = [
    # Configuration
    "AtlasConfig",
    "validate_config",
    # Errors
    "AtlasError",
    "TransportError",
    "FormatError",
    "EmptyResultError",
    "ErrorKind",
    # Loading
    "LoadPhase",
    "LoadState",
    "ResilientLoader",
    # Entities
    "Bounds",
    "LatLng",
    "LayerVisibility",
    "Site",
    "Zone",
    "ZoneContact",
    # Catalogue
    "CatalogueStore",
    "SearchOptions",
    "SearchResults",
    "AtlasService",
    "CatalogueSnapshot",
    "Viewport",
]
