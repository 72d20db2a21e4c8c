"""
Enrichment Merger

Merges Congress.gov member records into loaded zones, matched by district
number. Enrichment is optional: zones stay fully usable without it.
"""

import logging
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from district_atlas.errors import FormatError
from district_atlas.models import Zone, ZoneContact

logger = logging.getLogger(__name__)


# ============================================================================
# Congress.gov member models
# ============================================================================

class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Depiction(_ApiModel):
    image_url: Optional[str] = Field(default=None, alias="imageUrl")


class ContactInformation(_ApiModel):
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    email: Optional[str] = None
    website_url: Optional[str] = Field(default=None, alias="websiteUrl")
    office_address: Optional[str] = Field(default=None, alias="officeAddress")


class Committee(_ApiModel):
    name: str
    system_code: Optional[str] = Field(default=None, alias="systemCode")
    is_chair: Optional[bool] = Field(default=None, alias="isChair")


class CurrentTerm(_ApiModel):
    committees: List[Committee] = Field(default_factory=list)


class Term(_ApiModel):
    state: Optional[str] = None
    state_code: Optional[str] = Field(default=None, alias="stateCode")
    current: Optional[CurrentTerm] = None


class CongressMember(_ApiModel):
    """Member record from the Congress.gov API"""
    name: str
    party: Optional[str] = None
    party_name: Optional[str] = Field(default=None, alias="partyName")
    state: Optional[str] = None
    district: Optional[str] = None
    url: Optional[str] = None
    depiction: Optional[Depiction] = None
    terms: List[Term] = Field(default_factory=list)
    contact_information: Optional[ContactInformation] = Field(
        default=None, alias="contactInformation"
    )

    @property
    def district_number(self) -> Optional[int]:
        """District field parsed as an integer; None when absent or non-numeric."""
        if self.district is None:
            return None
        try:
            return int(str(self.district).strip())
        except ValueError:
            return None

    @property
    def committee_names(self) -> List[str]:
        if not self.terms or self.terms[0].current is None:
            return []
        return [committee.name for committee in self.terms[0].current.committees]


# ============================================================================
# Response parsing
# ============================================================================

def extract_members(payload: Any) -> List[CongressMember]:
    """
    Accept {results: [...]}, a bare list, or {members: [...]}.

    Raises:
        FormatError: When none of the accepted shapes is present
    """
    if isinstance(payload, dict) and isinstance(payload.get("results"), list):
        records = payload["results"]
    elif isinstance(payload, list):
        records = payload
    elif isinstance(payload, dict) and isinstance(payload.get("members"), list):
        records = payload["members"]
    else:
        logger.warning(f"Unexpected congressional data structure: {type(payload).__name__}")
        raise FormatError("No valid member data found in response")

    members = []
    for record in records:
        if isinstance(record, dict) and isinstance(record.get("district"), int):
            record = {**record, "district": str(record["district"])}
        try:
            members.append(CongressMember.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Skipping malformed member record: {e.error_count()} validation errors")
    return members


# ============================================================================
# Merge
# ============================================================================

def _apply_member(zone: Zone, member: CongressMember):
    contact = member.contact_information
    zone.representative = member.name
    zone.party = member.party
    zone.photo_url = member.depiction.image_url if member.depiction else None
    zone.contact = ZoneContact(
        phone=contact.phone_number if contact else None,
        email=contact.email if contact else None,
        website=contact.website_url if contact else None,
        office=contact.office_address if contact else None,
    )
    zone.committees = member.committee_names


def merge_members(zones: Iterable[Zone], members: List[CongressMember]) -> int:
    """
    Merge representative data into zones in place.

    The first member whose district number equals the zone index wins.
    Zones without a match keep their current fields. Every merged field is
    overwritten, so merging the same members twice is a no-op.

    Returns:
        Number of zones that received member data
    """
    by_district = {}
    for member in members:
        number = member.district_number
        if number is not None and number not in by_district:
            by_district[number] = member

    matched = 0
    for zone in zones:
        member = by_district.get(zone.index)
        if member is None:
            continue
        _apply_member(zone, member)
        matched += 1
    return matched
