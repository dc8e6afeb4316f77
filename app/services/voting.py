"""
Ballot validation and submission.

``plan_ballot`` checks a voter's selections against the zone's seat count and
the candidate rows and lays out one line per seat. ``submit_ballot`` runs the
whole submission in a single transaction: the voter row is locked, the
has-voted flag is flipped with a compare-and-set and exactly ``seats`` vote
lines are inserted. Any failure rolls back all of it.
"""

import hashlib
from enum import Enum
from typing import Any
from uuid import UUID

import asyncpg
from pydantic import BaseModel

from app.core.exceptions import (
    AlreadyVoted,
    DuplicateSelection,
    InvalidCandidate,
    NotaConfirmationRequired,
    NotEligible,
    SeatOverflow,
    VoterNotFound,
    ZoneFrozen,
)
from app.core.logging_config import get_logger
from app.services.audit import ActorType, AuditAction, create_audit_log
from app.services.candidates import CandidateStatus, get_candidates_by_ids
from app.services.eligibility import resolve_eligibility
from app.services.voters import lock_voter
from app.services.zones import ElectionType, get_zone

logger = get_logger(__name__)


class LineKind(str, Enum):
    """What a ballot line counts toward."""

    CANDIDATE = "candidate"
    NOTA = "nota"


class BallotLine(BaseModel):
    seat_index: int
    kind: LineKind
    candidate_id: str | None = None

    @property
    def is_nota(self) -> bool:
        return self.kind == LineKind.NOTA


# ============================================
# VALIDATION
# ============================================


def plan_ballot(
    zone: dict,
    selections: list[str],
    candidates: dict[str, dict],
    confirm_nota_fill: bool = False,
) -> list[BallotLine]:
    """
    Validate selections for a zone and lay out its ballot lines.

    Args:
        zone: zone row (``id``, ``seats``, ``election_type``)
        selections: candidate ids chosen by the voter, in order
        candidates: candidate rows keyed by id (only the selected ones are needed)
        confirm_nota_fill: the voter has accepted NOTA for unfilled seats

    Returns:
        Exactly ``zone["seats"]`` lines: the selections followed by NOTA lines.

    Raises:
        SeatOverflow: more selections than seats
        DuplicateSelection: a candidate is selected twice
        InvalidCandidate: unknown, not approved or from another zone/election
        NotaConfirmationRequired: seats left unfilled without confirmation
    """
    seats = zone["seats"]
    selections = [str(s) for s in selections]

    if len(selections) > seats:
        raise SeatOverflow(
            f"At most {seats} selection(s) allowed in this zone",
            seats=seats,
            selected=len(selections),
        )

    duplicates = sorted({s for s in selections if selections.count(s) > 1})
    if duplicates:
        raise DuplicateSelection(
            "A candidate can only be selected once", candidate_ids=duplicates
        )

    for candidate_id in selections:
        candidate = candidates.get(candidate_id)
        if (
            candidate is None
            or candidate["status"] != CandidateStatus.APPROVED.value
            or str(candidate["zone_id"]) != str(zone["id"])
            or candidate["election_type"] != zone["election_type"]
        ):
            raise InvalidCandidate(
                "Selection is not an approved candidate of this zone",
                candidate_id=candidate_id,
            )

    shortfall = seats - len(selections)
    if shortfall and not confirm_nota_fill:
        raise NotaConfirmationRequired(
            f"{shortfall} seat(s) left unfilled will be recorded as NOTA. "
            "Confirm to continue.",
            seats=seats,
            selected=len(selections),
            nota_lines=shortfall,
        )

    lines = [
        BallotLine(seat_index=index, kind=LineKind.CANDIDATE, candidate_id=candidate_id)
        for index, candidate_id in enumerate(selections)
    ]
    lines.extend(
        BallotLine(seat_index=index, kind=LineKind.NOTA)
        for index in range(len(selections), seats)
    )
    return lines


# ============================================
# SUBMISSION
# ============================================


async def submit_ballot(
    conn: asyncpg.Connection,
    voter_id: UUID,
    election_type: ElectionType,
    selections: list[UUID | str],
    zone_id: UUID | None = None,
    confirm_nota_fill: bool = False,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> dict[str, Any]:
    """
    Submit a voter's ballot for one election.

    Each election is submitted on its own; nothing here spans elections.

    Returns:
        Receipt with the persisted ballot lines.

    Raises:
        VoterNotFound, AlreadyVoted, NotEligible, ZoneFrozen and the
        ``plan_ballot`` errors. Nothing is persisted when any is raised.
    """
    selection_ids = [str(s) for s in selections]
    has_voted_column = election_type.has_voted_column

    async with conn.transaction():
        voter = await lock_voter(conn, voter_id)
        if not voter:
            raise VoterNotFound("Voter not found", voter_id=str(voter_id))

        if voter[has_voted_column]:
            raise AlreadyVoted(
                f"You have already voted in the {election_type.display_name} election",
                election_type=election_type.value,
            )

        assigned_zone_id = voter.get(election_type.zone_column)
        zone = await get_zone(conn, UUID(assigned_zone_id)) if assigned_zone_id else None
        eligibility = resolve_eligibility(voter, election_type, zone)
        if not eligibility["eligible"]:
            raise NotEligible(
                f"Not eligible to vote in the {election_type.display_name} election",
                election_type=election_type.value,
                reason=eligibility["reason"],
            )

        if zone_id is not None and str(zone_id) != zone["id"]:
            raise NotEligible(
                "Ballot zone does not match your assigned zone",
                election_type=election_type.value,
                reason="zone_mismatch",
            )

        if zone["is_frozen"]:
            raise ZoneFrozen(
                f"Voting is closed in {zone['name']}", zone_id=zone["id"]
            )

        candidates = await get_candidates_by_ids(conn, selection_ids)
        lines = plan_ballot(zone, selection_ids, candidates, confirm_nota_fill)

        flipped = await conn.execute(
            f"""
            UPDATE voters
            SET {has_voted_column} = TRUE, updated_at = CURRENT_TIMESTAMP
            WHERE id = $1 AND {has_voted_column} = FALSE
            """,
            voter["id"],
        )
        if int(flipped.split()[-1]) != 1:
            raise AlreadyVoted(
                f"You have already voted in the {election_type.display_name} election",
                election_type=election_type.value,
            )

        persisted = []
        for line in lines:
            row = await conn.fetchrow(
                """
                INSERT INTO votes (
                    voter_id, zone_id, election_type, candidate_id, is_nota,
                    seat_index, ip_address, user_agent
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                RETURNING *
                """,
                voter["id"],
                zone["id"],
                election_type.value,
                line.candidate_id,
                line.is_nota,
                line.seat_index,
                ip_address,
                user_agent,
            )
            persisted.append(_parse_vote_row(row))

        nota_count = sum(1 for line in lines if line.is_nota)
        await create_audit_log(
            conn,
            action_type=AuditAction.BALLOT_SUBMITTED,
            actor_type=ActorType.VOTER,
            actor_id=voter["id"],
            resource_type="zones",
            resource_id=zone["id"],
            ip_address=ip_address,
            user_agent=user_agent,
            details={
                "election_type": election_type.value,
                "actual_votes": len(lines) - nota_count,
                "nota_votes": nota_count,
            },
        )

    logger.info(
        f"Ballot accepted: voter {voter['id']} {election_type.value} zone {zone['code']} "
        f"({len(lines) - nota_count} candidate, {nota_count} NOTA)"
    )

    return build_receipt(voter["id"], election_type, zone, persisted)


async def has_voted(
    conn: asyncpg.Connection, voter_id: UUID, election_type: ElectionType
) -> bool:
    """Check if a voter has already voted in an election."""
    result = await conn.fetchval(
        f"SELECT {election_type.has_voted_column} FROM voters WHERE id = $1",
        str(voter_id),
    )
    return result is True


async def get_ballot_lines(
    conn: asyncpg.Connection, voter_id: UUID, election_type: ElectionType
) -> list[dict]:
    """A voter's committed ballot lines for one election, in seat order."""
    rows = await conn.fetch(
        """
        SELECT * FROM votes
        WHERE voter_id = $1 AND election_type = $2
        ORDER BY seat_index ASC
        """,
        str(voter_id),
        election_type.value,
    )
    return [_parse_vote_row(row) for row in rows]


# ============================================
# VOTE RECEIPT
# ============================================


def build_receipt(
    voter_id: str,
    election_type: ElectionType,
    zone: dict,
    lines: list[dict],
) -> dict[str, Any]:
    """Summarize a committed ballot for the voter."""
    nota_votes = sum(1 for line in lines if line["is_nota"])
    voted_at = lines[0]["voted_at"] if lines else None
    return {
        "accepted": True,
        "election_type": election_type.value,
        "election_name": election_type.display_name,
        "zone_id": zone["id"],
        "zone_name": zone["name"],
        "seats": zone["seats"],
        "actual_votes": len(lines) - nota_votes,
        "nota_votes": nota_votes,
        "ballot_lines": [
            {
                "id": line["id"],
                "seat_index": line["seat_index"],
                "candidate_id": line["candidate_id"],
                "is_nota": line["is_nota"],
            }
            for line in lines
        ],
        "voted_at": voted_at.isoformat() if voted_at else None,
        "confirmation_code": hashlib.sha256(
            f"{election_type.value}-{voter_id}-{voted_at}".encode()
        ).hexdigest()[:12].upper(),
    }


# ============================================
# HELPER FUNCTIONS
# ============================================


def _parse_vote_row(row: asyncpg.Record | None) -> dict | None:
    """Parse a vote row into a dict."""
    if not row:
        return None

    result = dict(row)

    uuid_fields = ("id", "voter_id", "zone_id", "candidate_id")
    for field in uuid_fields:
        if result.get(field) is not None:
            result[field] = str(result[field])

    if result.get("ip_address"):
        result["ip_address"] = str(result["ip_address"])

    return result
