"""Admin data exports: voter roll, candidates and per-zone turnout."""

from typing import Any

import asyncpg

from app.services.turnout import compute_election_turnout
from app.services.zones import ElectionType

EXPORT_DATASETS = ("voters", "candidates", "turnout")

# Columns placed first in CSV exports
LEADING_COLUMNS = {
    "voters": ("voter_id", "name", "region"),
    "candidates": ("id", "name", "election_type", "zone_code", "status"),
    "turnout": ("election_type", "zone_code", "zone_name", "seats"),
}


async def export_voters(conn: asyncpg.Connection) -> list[dict[str, Any]]:
    """The voter roll with zone codes and has-voted flags."""
    rows = await conn.fetch(
        """
        SELECT v.voter_id, v.name, v.region, v.phone, v.email, v.dob, v.age,
               v.is_active,
               yz.code AS yuva_pankh_zone, kz.code AS karobari_zone,
               tz.code AS trustee_zone,
               v.has_voted_yuva_pankh, v.has_voted_karobari, v.has_voted_trustee,
               v.created_at
        FROM voters v
        LEFT JOIN zones yz ON yz.id = v.yuva_pankh_zone_id
        LEFT JOIN zones kz ON kz.id = v.karobari_zone_id
        LEFT JOIN zones tz ON tz.id = v.trustee_zone_id
        ORDER BY v.voter_id
        """
    )
    return [dict(row) for row in rows]


async def export_candidates(conn: asyncpg.Connection) -> list[dict[str, Any]]:
    """Every candidate with nomination outcome and votes received."""
    rows = await conn.fetch(
        """
        SELECT c.id, c.name, c.election_type, z.code AS zone_code,
               z.name AS zone_name, c.status, c.region, c.position,
               c.email, c.phone, c.rejection_reason,
               n.withdrawal_reason, n.submitted_at, n.reviewed_at, n.withdrawn_at,
               (SELECT COUNT(*) FROM votes vt WHERE vt.candidate_id = c.id) AS vote_count
        FROM candidates c
        JOIN zones z ON z.id = c.zone_id
        LEFT JOIN nominations n ON n.candidate_id = c.id
        ORDER BY c.election_type, z.name, c.name
        """
    )
    candidates = []
    for row in rows:
        candidate = dict(row)
        candidate["id"] = str(candidate["id"])
        candidates.append(candidate)
    return candidates


async def export_turnout(conn: asyncpg.Connection) -> list[dict[str, Any]]:
    """Turnout of every active zone, all three elections, read fresh."""
    rows: list[dict[str, Any]] = []
    for election_type in ElectionType:
        rows.extend(await compute_election_turnout(conn, election_type))
    return rows


async def export_dataset(conn: asyncpg.Connection, dataset: str) -> list[dict[str, Any]]:
    exporters = {
        "voters": export_voters,
        "candidates": export_candidates,
        "turnout": export_turnout,
    }
    if dataset not in exporters:
        raise ValueError(f"Dataset must be one of: {', '.join(EXPORT_DATASETS)}")
    return await exporters[dataset](conn)
