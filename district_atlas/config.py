"""
Configuration for District Atlas

All environment access for the project happens here. Components receive an
AtlasConfig at construction and never read the environment themselves.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()

# Jurisdiction defaults (Texas)
DEFAULT_JURISDICTION = "TX"
DEFAULT_JURISDICTION_NAME = "Texas"
DEFAULT_EXPECTED_ZONES = 36

# Approximate state borders
TEXAS_BOUNDS = {
    "north": 36.5007,
    "south": 25.8371,
    "east": -93.5080,
    "west": -106.6456,
}
TEXAS_CENTER = {"lat": 31.9686, "lng": -99.9018}

# Congressional districts are apportioned to roughly equal populations
PLACEHOLDER_POPULATION = 750_000

# Retry policy
MAX_RETRY_ATTEMPTS = 3
RETRY_BASE_DELAY = 1.0  # seconds

DEFAULT_LAYER_VISIBILITY = {
    "major_cities": False,
    "congressional_districts": False,
    "district_boundaries": False,
    "counties": False,
    "head_start_programs": True,
}

PLACEHOLDER_API_KEY = "your_congress_api_key_here"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass
class AtlasConfig:
    """Injected configuration for loaders, store and enrichment"""

    # GeoJSON feeds
    feed_base_url: str = "http://localhost:5173/assets/geojson"
    sites_path: str = "headStartPrograms.json"
    zone_path_template: str = "{jurisdiction}-{index}/shape.geojson"

    # Jurisdiction
    jurisdiction: str = DEFAULT_JURISDICTION
    jurisdiction_name: str = DEFAULT_JURISDICTION_NAME
    expected_zones: int = DEFAULT_EXPECTED_ZONES
    region_bounds: Dict[str, float] = field(default_factory=lambda: dict(TEXAS_BOUNDS))
    fallback_center: Dict[str, float] = field(default_factory=lambda: dict(TEXAS_CENTER))
    placeholder_population: int = PLACEHOLDER_POPULATION

    # Congress.gov enrichment
    congress_api_url: str = "https://api.congress.gov/v3"
    congress_api_key: Optional[str] = None
    congress_session: int = 118
    congress_chamber: str = "House"
    congress_limit: int = 50

    # Loading
    request_timeout: float = 30.0
    max_retries: int = MAX_RETRY_ATTEMPTS
    retry_base_delay: float = RETRY_BASE_DELAY

    @property
    def enrichment_enabled(self) -> bool:
        return bool(self.congress_api_key) and self.congress_api_key != PLACEHOLDER_API_KEY

    def zone_path(self, index: int) -> str:
        return self.zone_path_template.format(jurisdiction=self.jurisdiction, index=index)

    @classmethod
    def from_env(cls) -> "AtlasConfig":
        """Build configuration from environment variables (and .env)."""
        defaults = cls()
        return cls(
            feed_base_url=os.getenv("ATLAS_FEED_BASE_URL", defaults.feed_base_url),
            sites_path=os.getenv("ATLAS_SITES_PATH", defaults.sites_path),
            zone_path_template=os.getenv("ATLAS_ZONE_PATH_TEMPLATE", defaults.zone_path_template),
            jurisdiction=os.getenv("ATLAS_JURISDICTION", defaults.jurisdiction).upper(),
            jurisdiction_name=os.getenv("ATLAS_JURISDICTION_NAME", defaults.jurisdiction_name),
            expected_zones=_env_int("ATLAS_EXPECTED_ZONES", defaults.expected_zones),
            congress_api_url=os.getenv("CONGRESS_API_URL", defaults.congress_api_url),
            congress_api_key=os.getenv("CONGRESS_API_KEY") or None,
            congress_session=_env_int("CONGRESS_SESSION", defaults.congress_session),
            request_timeout=_env_float("ATLAS_REQUEST_TIMEOUT", defaults.request_timeout),
            max_retries=_env_int("ATLAS_MAX_RETRIES", defaults.max_retries),
            retry_base_delay=_env_float("ATLAS_RETRY_BASE_DELAY", defaults.retry_base_delay),
        )


def validate_config(config: AtlasConfig) -> Dict[str, List[str]]:
    """
    Check a configuration for problems.

    Enrichment is optional, so a missing API key is only a warning.
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not config.feed_base_url:
        errors.append("ATLAS_FEED_BASE_URL is required")
    if config.expected_zones < 1:
        errors.append("ATLAS_EXPECTED_ZONES must be at least 1")
    if config.max_retries < 0:
        errors.append("ATLAS_MAX_RETRIES must not be negative")
    if config.retry_base_delay < 0:
        errors.append("ATLAS_RETRY_BASE_DELAY must not be negative")

    bounds = config.region_bounds
    if bounds["south"] > bounds["north"] or bounds["west"] > bounds["east"]:
        errors.append("Region bounds are inverted")

    if not config.congress_api_key:
        warnings.append("CONGRESS_API_KEY not set - representative enrichment disabled")
    elif config.congress_api_key == PLACEHOLDER_API_KEY:
        warnings.append("Congress.gov API key is set to placeholder value")

    return {"errors": errors, "warnings": warnings}
