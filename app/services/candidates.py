"""Candidate service functions and profile field parsing."""

import json
from enum import Enum
from typing import Annotated, Any, Literal
from uuid import UUID

import asyncpg
from pydantic import BaseModel, Field, TypeAdapter

from app.services.zones import ElectionType


class CandidateStatus(str, Enum):
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


# ============================================
# PROFILE FIELDS
# ============================================


class RawText(BaseModel):
    """Free text as the candidate typed it."""

    kind: Literal["raw_text"] = "raw_text"
    text: str


class Structured(BaseModel):
    """Key/value profile details (institution, years, role, ...)."""

    kind: Literal["structured"] = "structured"
    fields: dict[str, Any]


ProfileField = Annotated[RawText | Structured, Field(discriminator="kind")]

_profile_adapter: TypeAdapter = TypeAdapter(ProfileField)


def parse_profile_field(value: Any) -> RawText | Structured | None:
    """
    Resolve an incoming experience/education value into a tagged variant.

    Accepts an already tagged dict, a plain dict, a JSON-encoded object or
    plain text. Empty input gives ``None``.
    """
    if value is None:
        return None
    if isinstance(value, (RawText, Structured)):
        return value

    if isinstance(value, dict):
        if "kind" in value:
            return _profile_adapter.validate_python(value)
        return Structured(fields=value)

    text = str(value).strip()
    if not text:
        return None
    if text.startswith("{"):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            return RawText(text=text)
        if isinstance(decoded, dict):
            return parse_profile_field(decoded)
    return RawText(text=text)


def dump_profile_field(value: RawText | Structured | None) -> str | None:
    return value.model_dump_json() if value else None


# ============================================
# CANDIDATE CRUD
# ============================================


async def create_candidate(
    conn: asyncpg.Connection,
    name: str,
    election_type: ElectionType,
    zone_id: UUID,
    region: str | None = None,
    position: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    experience: Any = None,
    education: Any = None,
) -> dict[str, Any] | None:
    """Create a candidate in PENDING state."""
    result = await conn.fetchrow(
        """
        INSERT INTO candidates (
            name, email, phone, region, election_type, zone_id, position,
            experience, education
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8::jsonb, $9::jsonb)
        RETURNING *
        """,
        name,
        email,
        phone,
        region,
        election_type.value,
        str(zone_id),
        position,
        dump_profile_field(parse_profile_field(experience)),
        dump_profile_field(parse_profile_field(education)),
    )
    return _parse_candidate_row(result)


async def get_candidate(conn: asyncpg.Connection, candidate_id: UUID) -> dict | None:
    result = await conn.fetchrow(
        "SELECT * FROM candidates WHERE id = $1", str(candidate_id)
    )
    return _parse_candidate_row(result)


async def get_candidates_by_ids(
    conn: asyncpg.Connection, candidate_ids: list[str]
) -> dict[str, dict]:
    """Fetch candidates by id, keyed by id. Unknown ids are simply absent."""
    if not candidate_ids:
        return {}
    rows = await conn.fetch(
        "SELECT * FROM candidates WHERE id = ANY($1::uuid[])",
        candidate_ids,
    )
    candidates = [_parse_candidate_row(row) for row in rows]
    return {c["id"]: c for c in candidates}


async def list_approved_candidates(
    conn: asyncpg.Connection, zone_id: UUID
) -> list[dict]:
    """Approved candidates of a zone, i.e. the ones a ballot may select."""
    rows = await conn.fetch(
        """
        SELECT * FROM candidates
        WHERE zone_id = $1 AND status = $2
        ORDER BY name ASC
        """,
        str(zone_id),
        CandidateStatus.APPROVED.value,
    )
    return [_parse_candidate_row(row) for row in rows]


async def set_candidate_status(
    conn: asyncpg.Connection,
    candidate_id: UUID,
    status: CandidateStatus,
    rejection_reason: str | None = None,
) -> dict | None:
    result = await conn.fetchrow(
        """
        UPDATE candidates
        SET status = $1, rejection_reason = $2, updated_at = CURRENT_TIMESTAMP
        WHERE id = $3
        RETURNING *
        """,
        status.value,
        rejection_reason,
        str(candidate_id),
    )
    return _parse_candidate_row(result)


def _parse_candidate_row(row: asyncpg.Record | None) -> dict[str, Any] | None:
    """Parse a candidate row, resolving profile fields into tagged variants."""
    if not row:
        return None

    result = dict(row)

    for field in ("id", "zone_id"):
        if result.get(field) is not None:
            result[field] = str(result[field])

    for field in ("experience", "education"):
        parsed = parse_profile_field(result.get(field))
        result[field] = parsed.model_dump() if parsed else None

    return result
