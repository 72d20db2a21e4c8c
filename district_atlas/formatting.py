"""
Display formatting helpers shared by zone labelling and the API adapter.
"""

import math
from typing import Optional

from district_atlas.models import LatLng


def ordinal_suffix(num: int) -> str:
    """Ordinal suffix for a number (1st, 2nd, 3rd, 11th, 22nd...)."""
    j = num % 10
    k = num % 100
    if j == 1 and k != 11:
        return "st"
    if j == 2 and k != 12:
        return "nd"
    if j == 3 and k != 13:
        return "rd"
    return "th"


def format_district_number(district_number: int) -> str:
    return f"{district_number}{ordinal_suffix(district_number)}"


def format_coordinate(value: float, axis: str, decimal_places: int = 4) -> str:
    """Format a coordinate with a hemisphere letter, e.g. 30.2672° N."""
    formatted = f"{abs(value):.{decimal_places}f}"
    if value == 0:
        return f"{formatted}°"
    if axis == "lat":
        return f"{formatted}° {'N' if value > 0 else 'S'}"
    return f"{formatted}° {'E' if value > 0 else 'W'}"


def parse_coordinate_string(text: str) -> Optional[LatLng]:
    """Parse "lat, lng" into a LatLng; None when malformed."""
    parts = [part.strip() for part in text.strip().split(",")]
    if len(parts) != 2:
        return None
    try:
        lat = float(parts[0])
        lng = float(parts[1])
    except ValueError:
        return None
    if lat != lat or lng != lng:  # NaN
        return None
    return LatLng(lat=lat, lng=lng)


def format_currency(amount: float) -> str:
    """Whole-dollar USD, e.g. $1,250,000."""
    whole = math.floor(abs(amount) + 0.5)
    sign = "-" if amount < 0 and whole else ""
    return f"{sign}${whole:,}"


def format_funding(funding: Optional[float]) -> str:
    if funding is None:
        return "Funding data not available"
    return format_currency(funding)


def format_number(num: float) -> str:
    """Compact number with K/M/B suffix."""
    if num >= 1_000_000_000:
        return f"{num / 1_000_000_000:.1f}B"
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return str(num)


def map_type_for_zoom(zoom_level: int) -> str:
    """Base map style for a zoom level: state, city or street view."""
    if zoom_level <= 8:
        return "terrain"
    if zoom_level <= 13:
        return "roadmap"
    return "hybrid"
