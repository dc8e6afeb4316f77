"""Voter roll service functions."""

from typing import Any
from uuid import UUID

import asyncpg

from app.core.config import settings
from app.core.logging_config import get_logger
from app.core.validation import normalize_email, normalize_phone, parse_dob
from app.services.eligibility import is_yuva_pankh_age, voter_age
from app.services.zones import ElectionType, get_zone_by_code, zone_codes_for_region

logger = get_logger(__name__)


# ============================================
# REGISTRATION
# ============================================


async def assign_zones(
    conn: asyncpg.Connection,
    region: str,
    dob: str | None,
    age: int | None = None,
) -> dict[str, str | None]:
    """
    Work out the zone id per election for a new voter.

    Yuva Pankh is only assigned when the voter is within the age band as of
    the cutoff date.
    """
    codes = zone_codes_for_region(region)
    yuva_age_ok = is_yuva_pankh_age(
        voter_age({"dob": dob, "age": age}, settings.YUVA_PANKH_AGE_CUTOFF)
    )

    assignment: dict[str, str | None] = {}
    for election_type in ElectionType:
        code = codes.get(election_type)
        if election_type == ElectionType.YUVA_PANKH and not yuva_age_ok:
            code = None

        zone = await get_zone_by_code(conn, code, election_type) if code else None
        if code and not zone:
            logger.warning(f"Zone {code} for {election_type.value} is not in the registry")
        assignment[election_type.zone_column] = zone["id"] if zone else None

    return assignment


async def register_voter(
    conn: asyncpg.Connection,
    voter_id: str,
    name: str,
    region: str,
    phone: str | None = None,
    email: str | None = None,
    dob: str | None = None,
    age: int | None = None,
) -> dict | None:
    """Add a voter to the roll with zone assignments derived from region and age."""
    if not phone and not email:
        raise ValueError("A voter needs a phone number or an email address")
    if dob:
        parse_dob(dob)

    phone = normalize_phone(phone) if phone else None
    email = normalize_email(email) if email else None
    zones = await assign_zones(conn, region, dob, age)

    result = await conn.fetchrow(
        """
        INSERT INTO voters (
            voter_id, name, phone, email, dob, age, region,
            yuva_pankh_zone_id, karobari_zone_id, trustee_zone_id
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
        ON CONFLICT (voter_id) DO NOTHING
        RETURNING *
        """,
        voter_id,
        name,
        phone,
        email,
        dob,
        age,
        region,
        zones["yuva_pankh_zone_id"],
        zones["karobari_zone_id"],
        zones["trustee_zone_id"],
    )
    if result:
        logger.info(f"Voter {voter_id} registered in region {region}")
    return _parse_voter_row(result)


async def register_voters_bulk(
    conn: asyncpg.Connection, rows: list[dict[str, Any]]
) -> dict[str, Any]:
    """
    Add a batch of voters, e.g. an uploaded roll.

    Each row is inserted in its own savepoint, so a bad row is reported and
    the rest still load. Rows whose voter id or phone number is already on
    the roll, or earlier in the same batch, are skipped.

    Returns:
        Dict with ``created``, ``skipped`` and ``errors`` lists. Skipped and
        error entries carry the 1-based ``row`` number and a ``reason``.
    """
    created: list[dict[str, Any]] = []
    skipped: list[dict[str, Any]] = []
    errors: list[dict[str, Any]] = []

    cleaned = []
    for number, row in enumerate(rows, start=1):
        try:
            cleaned.append((number, _clean_roll_row(row)))
        except ValueError as e:
            errors.append({"row": number, "voter_id": row.get("voter_id"), "reason": str(e)})

    phones = [values["phone"] for _, values in cleaned if values["phone"]]
    existing_phones = set()
    if phones:
        existing = await conn.fetch(
            "SELECT phone FROM voters WHERE phone = ANY($1::text[])", phones
        )
        existing_phones = {r["phone"] for r in existing}

    seen_ids: set[str] = set()
    for number, values in cleaned:
        entry = {"row": number, "voter_id": values["voter_id"]}
        if values["voter_id"] in seen_ids:
            skipped.append({**entry, "reason": "Duplicate voter id in upload"})
            continue
        if values["phone"] in existing_phones:
            skipped.append({**entry, "reason": "Phone number is already registered"})
            continue

        try:
            async with conn.transaction():
                voter = await register_voter(conn, **values)
        except (ValueError, asyncpg.DataError, asyncpg.IntegrityConstraintViolationError) as e:
            errors.append({**entry, "reason": str(e)})
            continue

        seen_ids.add(values["voter_id"])
        if voter is None:
            skipped.append({**entry, "reason": "Voter id is already registered"})
            continue
        if values["phone"]:
            existing_phones.add(values["phone"])
        created.append({**entry, "id": voter["id"]})

    logger.info(
        f"Voter roll upload: {len(created)} created, {len(skipped)} skipped, "
        f"{len(errors)} rejected of {len(rows)} rows"
    )
    return {"created": created, "skipped": skipped, "errors": errors}


# ============================================
# LOOKUPS
# ============================================


async def get_voter(conn: asyncpg.Connection, voter_id: UUID) -> dict | None:
    """Get voter by primary key."""
    result = await conn.fetchrow("SELECT * FROM voters WHERE id = $1", str(voter_id))
    return _parse_voter_row(result)


async def lock_voter(conn: asyncpg.Connection, voter_id: UUID) -> dict | None:
    """Get a voter row and hold its lock until the enclosing transaction ends."""
    result = await conn.fetchrow(
        "SELECT * FROM voters WHERE id = $1 FOR UPDATE", str(voter_id)
    )
    return _parse_voter_row(result)


async def get_voter_by_contact(
    conn: asyncpg.Connection,
    phone: str | None = None,
    email: str | None = None,
) -> dict | None:
    """Find an active voter by normalized phone or email."""
    if phone:
        result = await conn.fetchrow(
            "SELECT * FROM voters WHERE phone = $1 AND is_active = TRUE",
            normalize_phone(phone),
        )
    elif email:
        result = await conn.fetchrow(
            "SELECT * FROM voters WHERE email = $1 AND is_active = TRUE",
            normalize_email(email),
        )
    else:
        return None
    return _parse_voter_row(result)


async def list_voters(
    conn: asyncpg.Connection,
    region: str | None = None,
    zone_id: UUID | None = None,
    election_type: ElectionType | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[dict], int]:
    """List voters with optional region or zone filter."""
    conditions = ["TRUE"]
    params: list[Any] = []

    if region:
        params.append(region)
        conditions.append(f"region = ${len(params)}")

    if zone_id and election_type:
        params.append(str(zone_id))
        conditions.append(f"{election_type.zone_column} = ${len(params)}")

    where = " AND ".join(conditions)
    total = await conn.fetchval(f"SELECT COUNT(*) FROM voters WHERE {where}", *params)

    params.extend([limit, offset])
    rows = await conn.fetch(
        f"""
        SELECT * FROM voters WHERE {where}
        ORDER BY voter_id
        LIMIT ${len(params) - 1} OFFSET ${len(params)}
        """,
        *params,
    )
    return [_parse_voter_row(row) for row in rows], total or 0


async def set_voter_active(
    conn: asyncpg.Connection, voter_id: UUID, active: bool
) -> dict | None:
    result = await conn.fetchrow(
        """
        UPDATE voters SET is_active = $1, updated_at = CURRENT_TIMESTAMP
        WHERE id = $2
        RETURNING *
        """,
        active,
        str(voter_id),
    )
    return _parse_voter_row(result)


# ============================================
# HELPER FUNCTIONS
# ============================================


def _clean_roll_row(row: dict[str, Any]) -> dict[str, Any]:
    """Validate and normalize one uploaded roll row. Raises ValueError."""
    values = {
        key: value.strip() if isinstance(value, str) else value
        for key, value in row.items()
    }
    values = {key: value for key, value in values.items() if value not in (None, "")}

    missing = [field for field in ("voter_id", "name", "region") if not values.get(field)]
    if missing:
        raise ValueError(f"Missing {', '.join(missing)}")
    if not values.get("phone") and not values.get("email"):
        raise ValueError("A voter needs a phone number or an email address")

    age = values.get("age")
    if age is not None:
        try:
            age = int(age)
        except (TypeError, ValueError):
            raise ValueError(f"Age must be a whole number, got {age!r}") from None

    dob = values.get("dob")
    if dob is not None:
        try:
            parse_dob(str(dob))
        except ValueError:
            raise ValueError(f"Date of birth must be DD/MM/YYYY, got {dob!r}") from None

    phone = values.get("phone")
    email = values.get("email")
    return {
        "voter_id": str(values["voter_id"]),
        "name": str(values["name"]),
        "region": str(values["region"]),
        "phone": normalize_phone(str(phone)) if phone else None,
        "email": normalize_email(str(email)) if email else None,
        "dob": str(dob) if dob is not None else None,
        "age": age,
    }


def _parse_voter_row(row: asyncpg.Record | None) -> dict | None:
    """Parse a voter row into a dict."""
    if not row:
        return None

    result = dict(row)

    uuid_fields = ("id", "yuva_pankh_zone_id", "karobari_zone_id", "trustee_zone_id")
    for field in uuid_fields:
        if result.get(field) is not None:
            result[field] = str(result[field])

    return result
