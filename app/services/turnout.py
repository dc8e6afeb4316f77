"""Per-zone turnout and tallies computed from the voter roll and vote lines."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

import asyncpg

from app.core.exceptions import ResultsUnavailable, ZoneNotFound
from app.core.logging_config import get_logger, integrity_logger
from app.services.candidates import CandidateStatus
from app.services.zones import ElectionType, get_zone

logger = get_logger(__name__)

STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def round1(value: float) -> float:
    """Round to one decimal place, halves away from zero."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def turnout_percentage(unique_voters_voted: int, total_voters: int) -> float:
    if total_voters <= 0:
        return 0.0
    return round1(unique_voters_voted / total_voters * 100)


def build_zone_turnout(
    zone: dict,
    total_voters: int,
    unique_voters_voted: int,
    total_votes: int,
    actual_votes: int,
    nota_votes: int,
) -> dict[str, Any]:
    """
    Assemble the turnout figures of one zone.

    A vote-line count that disagrees with ``unique_voters_voted * seats`` is
    reported to the integrity log; the figures are returned as counted.
    """
    expected_votes = unique_voters_voted * zone["seats"]
    if total_votes != expected_votes:
        integrity_logger.log_turnout_mismatch(
            str(zone["id"]), zone["seats"], unique_voters_voted, total_votes
        )

    percentage = turnout_percentage(unique_voters_voted, total_voters)
    return {
        "zone_id": str(zone["id"]),
        "zone_code": zone["code"],
        "zone_name": zone["name"],
        "name_local": zone.get("name_local"),
        "election_type": zone["election_type"],
        "seats": zone["seats"],
        "is_frozen": zone.get("is_frozen", False),
        "total_voters": total_voters,
        "unique_voters_voted": unique_voters_voted,
        "total_votes": total_votes,
        "actual_votes": actual_votes,
        "nota_votes": nota_votes,
        "turnout_percentage": percentage,
        "completed": percentage >= 100,
    }


# ============================================
# STORE QUERIES
# ============================================


def _zone_turnout_query(election_type: ElectionType, where: str) -> str:
    zone_column = election_type.zone_column
    voted_column = election_type.has_voted_column
    return f"""
        SELECT
            z.*,
            COALESCE(r.total_voters, 0) AS total_voters,
            COALESCE(r.unique_voters_voted, 0) AS unique_voters_voted,
            COALESCE(b.total_votes, 0) AS total_votes,
            COALESCE(b.actual_votes, 0) AS actual_votes,
            COALESCE(b.nota_votes, 0) AS nota_votes
        FROM zones z
        LEFT JOIN (
            SELECT
                {zone_column} AS zone_id,
                COUNT(*) FILTER (WHERE is_active) AS total_voters,
                COUNT(*) FILTER (WHERE {voted_column}) AS unique_voters_voted
            FROM voters
            WHERE {zone_column} IS NOT NULL
            GROUP BY {zone_column}
        ) r ON r.zone_id = z.id
        LEFT JOIN (
            SELECT
                zone_id,
                COUNT(*) AS total_votes,
                COUNT(*) FILTER (WHERE NOT is_nota) AS actual_votes,
                COUNT(*) FILTER (WHERE is_nota) AS nota_votes
            FROM votes
            WHERE election_type = $1
            GROUP BY zone_id
        ) b ON b.zone_id = z.id
        WHERE {where}
    """


def _row_to_turnout(row: asyncpg.Record) -> dict[str, Any]:
    data = dict(row)
    return build_zone_turnout(
        data,
        total_voters=data["total_voters"],
        unique_voters_voted=data["unique_voters_voted"],
        total_votes=data["total_votes"],
        actual_votes=data["actual_votes"],
        nota_votes=data["nota_votes"],
    )


async def compute_zone_turnout(conn: asyncpg.Connection, zone_id: UUID) -> dict[str, Any]:
    """
    Turnout of one zone.

    Raises:
        ZoneNotFound: unknown zone id
        ResultsUnavailable: the store could not be read
    """
    try:
        zone = await get_zone(conn, zone_id)
        if not zone:
            raise ZoneNotFound("Zone not found", zone_id=str(zone_id))

        election_type = ElectionType(zone["election_type"])
        row = await conn.fetchrow(
            _zone_turnout_query(election_type, "z.id = $2"),
            election_type.value,
            str(zone_id),
        )
    except STORE_ERRORS as e:
        logger.error(f"Turnout for zone {zone_id} unavailable: {e}")
        raise ResultsUnavailable("Turnout could not be computed") from e

    return _row_to_turnout(row)


async def compute_election_turnout(
    conn: asyncpg.Connection, election_type: ElectionType
) -> list[dict[str, Any]]:
    """Turnout of every active zone of an election, in one query."""
    try:
        rows = await conn.fetch(
            _zone_turnout_query(election_type, "z.election_type = $1 AND z.is_active = TRUE"),
            election_type.value,
        )
    except STORE_ERRORS as e:
        logger.error(f"Turnout for {election_type.value} unavailable: {e}")
        raise ResultsUnavailable("Turnout could not be computed") from e

    return [_row_to_turnout(row) for row in rows]


async def count_active_voters(conn: asyncpg.Connection) -> int:
    try:
        result = await conn.fetchval("SELECT COUNT(*) FROM voters WHERE is_active = TRUE")
    except STORE_ERRORS as e:
        raise ResultsUnavailable("Voter count could not be read") from e
    return result or 0


async def candidate_tallies(conn: asyncpg.Connection, zone_id: UUID) -> dict[str, Any]:
    """Votes per approved candidate of a zone plus the zone's NOTA lines."""
    try:
        zone = await get_zone(conn, zone_id)
        if not zone:
            raise ZoneNotFound("Zone not found", zone_id=str(zone_id))

        rows = await conn.fetch(
            """
            SELECT c.id, c.name, c.position, COUNT(v.id) AS votes
            FROM candidates c
            LEFT JOIN votes v ON v.candidate_id = c.id
            WHERE c.zone_id = $1 AND c.status = $2
            GROUP BY c.id, c.name, c.position
            ORDER BY votes DESC, c.name ASC
            """,
            str(zone_id),
            CandidateStatus.APPROVED.value,
        )
        nota_votes = await conn.fetchval(
            "SELECT COUNT(*) FROM votes WHERE zone_id = $1 AND is_nota = TRUE",
            str(zone_id),
        )
    except STORE_ERRORS as e:
        logger.error(f"Tallies for zone {zone_id} unavailable: {e}")
        raise ResultsUnavailable("Tallies could not be computed") from e

    return {
        "zone_id": zone["id"],
        "zone_name": zone["name"],
        "election_type": zone["election_type"],
        "seats": zone["seats"],
        "candidates": [
            {
                "candidate_id": str(row["id"]),
                "name": row["name"],
                "position": row["position"],
                "votes": row["votes"],
            }
            for row in rows
        ],
        "nota_votes": nota_votes or 0,
    }
