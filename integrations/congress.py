"""
Congress.gov integration

Fetches House member records for the configured state and congress so the
district catalogue can be enriched with representative details.
"""

import logging
from typing import List, Optional

import httpx

from district_atlas.config import AtlasConfig
from district_atlas.enrichment import CongressMember, extract_members
from district_atlas.errors import FormatError, TransportError

logger = logging.getLogger(__name__)


class CongressClient:
    """Thin async client for the Congress.gov v3 member endpoint."""

    def __init__(self, config: AtlasConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.client = httpx.AsyncClient(
            base_url=config.congress_api_url,
            timeout=config.request_timeout,
            transport=transport,
        )

    async def close(self):
        await self.client.aclose()

    def member_params(self) -> dict:
        return {
            "api_key": self.config.congress_api_key,
            "congress": self.config.congress_session,
            "chamber": self.config.congress_chamber,
            "state": self.config.jurisdiction,
            "format": "json",
            "limit": self.config.congress_limit,
        }

    async def fetch_members(self) -> List[CongressMember]:
        """
        Current members for the configured jurisdiction.

        Raises:
            TransportError: Network failure or non-2xx status
            FormatError: Body is not JSON or has no member list
        """
        logger.info("Loading congressional representative data from Congress.gov API...")
        try:
            response = await self.client.get("/member", params=self.member_params())
        except httpx.TransportError as e:
            raise TransportError(f"Congress.gov request failed: {e}") from e

        if response.is_error:
            raise TransportError(
                f"HTTP {response.status_code} {response.reason_phrase}", status=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise FormatError(f"Failed to parse congressional data: {e}") from e

        members = extract_members(payload)
        logger.info(f"Received data for {len(members)} representatives")
        return members
