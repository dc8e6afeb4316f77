"""
Voter eligibility resolution.

``resolve_eligibility`` is a pure function of the voter row, the zone row it
points at and the age cutoff date. ``get_eligibility`` only loads those rows.
"""

from datetime import date
from uuid import UUID

import asyncpg

from app.core.config import settings
from app.core.exceptions import VoterNotFound
from app.core.logging_config import get_logger, integrity_logger
from app.core.validation import age_as_of, parse_dob
from app.services.zones import ElectionType, get_zone

logger = get_logger(__name__)

REASON_AGE = "age"
REASON_REGION = "region"
REASON_UNKNOWN = "unknown"
REASON_NOT_ASSIGNED = "not_assigned"
REASON_INACTIVE = "inactive"
REASON_ZONE_MISSING = "zone_missing"

YUVA_PANKH_REGIONS = ("karnataka & goa", "karnataka-goa", "raigad")


def voter_age(voter: dict, reference: date) -> int | None:
    """Age as of ``reference`` from the DD/MM/YYYY DOB, falling back to the stored age."""
    dob = voter.get("dob")
    if dob:
        try:
            return age_as_of(parse_dob(dob), reference)
        except ValueError:
            logger.warning(f"Voter {voter.get('id')} has unparseable DOB {dob!r}")
    return voter.get("age")


def is_yuva_pankh_age(age: int | None) -> bool:
    return age is not None and settings.YUVA_PANKH_MIN_AGE <= age <= settings.YUVA_PANKH_MAX_AGE


def is_yuva_pankh_region(region: str | None) -> bool:
    if not region:
        return False
    normalized = region.strip().lower()
    return any(allowed in normalized for allowed in YUVA_PANKH_REGIONS)


def yuva_pankh_ineligibility_reason(voter: dict, cutoff: date | None = None) -> str:
    """
    Explain why a voter without a Yuva Pankh zone cannot vote in it.

    Returns ``age``, ``region`` or ``unknown``. ``unknown`` means the voter
    passes every rule yet has no zone, which is a roll data error.
    """
    cutoff = cutoff or settings.YUVA_PANKH_AGE_CUTOFF
    if not is_yuva_pankh_age(voter_age(voter, cutoff)):
        return REASON_AGE
    if not is_yuva_pankh_region(voter.get("region")):
        return REASON_REGION

    integrity_logger.log_unknown_ineligibility(
        str(voter.get("id")), ElectionType.YUVA_PANKH.value, voter.get("region")
    )
    return REASON_UNKNOWN


def resolve_eligibility(
    voter: dict,
    election_type: ElectionType,
    zone: dict | None,
    cutoff: date | None = None,
) -> dict:
    """
    Resolve whether ``voter`` may vote in ``election_type``.

    Args:
        voter: voter row (zone assignment columns, dob, age, region, is_active)
        election_type: the election being asked about
        zone: the zone row referenced by the voter's assignment, if any
        cutoff: reference date for age rules (defaults to the configured cutoff)

    Returns:
        ``{"eligible": True, "zone": {...}, "seat_count": n}`` or
        ``{"eligible": False, "reason": "..."}``
    """
    cutoff = cutoff or settings.YUVA_PANKH_AGE_CUTOFF

    if not voter.get("is_active", True):
        return _ineligible(election_type, REASON_INACTIVE)

    zone_id = voter.get(election_type.zone_column)
    if zone_id is None:
        if election_type == ElectionType.YUVA_PANKH:
            return _ineligible(election_type, yuva_pankh_ineligibility_reason(voter, cutoff))
        return _ineligible(election_type, REASON_NOT_ASSIGNED)

    if zone is None or str(zone["id"]) != str(zone_id):
        logger.error(f"Voter {voter.get('id')} references missing zone {zone_id}")
        return _ineligible(election_type, REASON_ZONE_MISSING)

    if zone["election_type"] != election_type.value:
        logger.error(
            f"Voter {voter.get('id')} {election_type.value} zone {zone_id} "
            f"belongs to {zone['election_type']}"
        )
        return _ineligible(election_type, REASON_ZONE_MISSING)

    if election_type == ElectionType.TRUSTEE:
        age = voter_age(voter, cutoff)
        if age is None or age < settings.TRUSTEE_MIN_AGE:
            return _ineligible(election_type, REASON_AGE)

    return {
        "eligible": True,
        "election_type": election_type.value,
        "zone": zone,
        "seat_count": zone["seats"],
        "reason": None,
    }


def _ineligible(election_type: ElectionType, reason: str) -> dict:
    return {
        "eligible": False,
        "election_type": election_type.value,
        "zone": None,
        "seat_count": None,
        "reason": reason,
    }


async def get_eligibility(
    conn: asyncpg.Connection,
    voter_id: UUID,
    election_type: ElectionType,
) -> dict:
    """Load the voter and their zone, then resolve eligibility."""
    from app.services.voters import get_voter

    voter = await get_voter(conn, voter_id)
    if not voter:
        raise VoterNotFound("Voter not found", voter_id=str(voter_id))

    zone_id = voter.get(election_type.zone_column)
    zone = await get_zone(conn, UUID(zone_id)) if zone_id else None
    return resolve_eligibility(voter, election_type, zone)
