"""
GeoJSON feed client

Fetches the Head Start program list and per-district boundary features
from the static GeoJSON feed. Library errors are translated into the
District Atlas error taxonomy so the loaders can classify them.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from district_atlas.config import AtlasConfig
from district_atlas.errors import FormatError, TransportError

logger = logging.getLogger(__name__)


class FeedClient:
    """
    Client for the site and zone GeoJSON feeds.

    Usage:
        async with FeedClient(config) as feeds:
            programs = await feeds.fetch_sites()
            feature = await feeds.fetch_zone_feature(7)
    """

    def __init__(self, config: AtlasConfig, session: Optional[aiohttp.ClientSession] = None):
        """
        Args:
            config: Feed base URL, paths and timeout
            session: Shared aiohttp session (created lazily when omitted)
        """
        self.config = config
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "FeedClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout)
            )
        return self._session

    async def close(self):
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def url_for(self, path: str) -> str:
        return f"{self.config.feed_base_url.rstrip('/')}/{path.lstrip('/')}"

    async def get_json(self, path: str) -> Any:
        """
        GET a feed document and decode its JSON body.

        Raises:
            TransportError: Connection failure, timeout or non-2xx status
            FormatError: Body is not valid JSON
        """
        url = self.url_for(path)
        session = self._get_session()
        try:
            async with session.get(url) as resp:
                if resp.status < 200 or resp.status >= 300:
                    raise TransportError(f"HTTP {resp.status} {resp.reason or ''}".strip(),
                                         status=resp.status)
                text = await resp.text()
        except aiohttp.ClientError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise TransportError(f"Request to {url} timed out") from e

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise FormatError(f"Invalid JSON from {url}: {e.msg}") from e

    async def fetch_sites(self) -> List[Any]:
        """Raw program records; the feed must be a JSON array."""
        data = await self.get_json(self.config.sites_path)
        if not isinstance(data, list):
            raise FormatError("Invalid Head Start programs data: Expected an array")
        return data

    async def fetch_zone_feature(self, index: int) -> Dict[str, Any]:
        """
        Boundary Feature for one district.

        Raises:
            FormatError: Feature lacks geometry or coordinates
        """
        data = await self.get_json(self.config.zone_path(index))
        geometry = data.get("geometry") if isinstance(data, dict) else None
        if not isinstance(geometry, dict) or not geometry.get("coordinates"):
            raise FormatError(
                f"Invalid district data for {self.config.jurisdiction}-{index}: "
                f"Missing geometry or coordinates"
            )
        return data
