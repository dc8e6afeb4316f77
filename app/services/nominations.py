"""
Nomination workflow: create, attach documents, submit, admin review.

A nomination moves PENDING -> SUBMITTED -> APPROVED | REJECTED and its
candidate row follows the same status. Before a decision the filing voter
may withdraw it. APPROVED, REJECTED and WITHDRAWN are final.

Candidate-facing functions take ``owner_voter_id``; a nomination filed by
another voter is reported as not found.
"""

from typing import Any
from uuid import UUID

import asyncpg

from app.core.exceptions import NominationNotFound, NominationReviewError, ZoneNotFound
from app.core.logging_config import get_logger
from app.services.audit import ActorType, AuditAction, create_audit_log
from app.services.candidates import (
    CandidateStatus,
    create_candidate,
    get_candidate,
    set_candidate_status,
)
from app.services.email import email_service
from app.services.zones import ElectionType, get_zone
from app.utils.spaces import (
    build_document_key,
    generate_document_upload_url,
    generate_document_view_url,
)

logger = get_logger(__name__)

DECISIONS = (CandidateStatus.APPROVED, CandidateStatus.REJECTED)
TERMINAL_STATUSES = (*DECISIONS, CandidateStatus.WITHDRAWN)
DEFAULT_WITHDRAWAL_REASON = "Candidate withdrew nomination"
DOCUMENT_TYPES = ("id_proof", "photo", "address_proof", "nomination_form", "other")


# ============================================
# NOMINATION CRUD
# ============================================


async def create_nomination(
    conn: asyncpg.Connection,
    name: str,
    election_type: ElectionType,
    zone_id: UUID,
    owner_voter_id: UUID,
    email: str | None = None,
    phone: str | None = None,
    region: str | None = None,
    position: str | None = None,
    experience: Any = None,
    education: Any = None,
) -> dict[str, Any]:
    """Create a candidate and its PENDING nomination, owned by the filing voter."""
    zone = await get_zone(conn, zone_id)
    if not zone or zone["election_type"] != election_type.value:
        raise ZoneNotFound(
            f"No {election_type.display_name} zone with this id", zone_id=str(zone_id)
        )

    async with conn.transaction():
        candidate = await create_candidate(
            conn,
            name=name,
            election_type=election_type,
            zone_id=zone_id,
            region=region,
            position=position,
            email=email,
            phone=phone,
            experience=experience,
            education=education,
        )
        row = await conn.fetchrow(
            """
            INSERT INTO nominations (candidate_id, status, owner_voter_id)
            VALUES ($1, $2, $3)
            RETURNING *
            """,
            candidate["id"],
            CandidateStatus.PENDING.value,
            str(owner_voter_id),
        )
        nomination = _parse_nomination_row(row)
        await create_audit_log(
            conn,
            action_type=AuditAction.NOMINATION_CREATED,
            actor_type=ActorType.VOTER,
            actor_id=owner_voter_id,
            resource_type="nominations",
            resource_id=nomination["id"],
            details={"election_type": election_type.value, "zone_id": zone["id"]},
        )

    logger.info(f"Nomination {nomination['id']} created for {election_type.value} zone {zone['code']}")
    nomination["candidate"] = candidate
    nomination["documents"] = []
    return nomination


async def get_nomination(
    conn: asyncpg.Connection,
    nomination_id: UUID,
    owner_voter_id: UUID | None = None,
) -> dict[str, Any] | None:
    """
    Get a nomination with its candidate and documents.

    With ``owner_voter_id``, nominations filed by anyone else come back as None.
    """
    row = await conn.fetchrow(
        "SELECT * FROM nominations WHERE id = $1", str(nomination_id)
    )
    nomination = _parse_nomination_row(row)
    if not nomination or not _owned_by(nomination, owner_voter_id):
        return None

    nomination["candidate"] = await get_candidate(conn, UUID(nomination["candidate_id"]))
    nomination["documents"] = await list_documents(conn, nomination_id)
    return nomination


async def list_nominations(
    conn: asyncpg.Connection,
    status: CandidateStatus | None = None,
    election_type: ElectionType | None = None,
    zone_id: UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """List nominations for the review dashboard, oldest submission first."""
    conditions = []
    params: list[Any] = []
    param_num = 1

    if status:
        conditions.append(f"n.status = ${param_num}")
        params.append(status.value)
        param_num += 1

    if election_type:
        conditions.append(f"c.election_type = ${param_num}")
        params.append(election_type.value)
        param_num += 1

    if zone_id:
        conditions.append(f"c.zone_id = ${param_num}")
        params.append(str(zone_id))
        param_num += 1

    where_clause = "WHERE " + " AND ".join(conditions) if conditions else ""
    base = f"""
        FROM nominations n
        JOIN candidates c ON c.id = n.candidate_id
        JOIN zones z ON z.id = c.zone_id
        {where_clause}
    """

    total = await conn.fetchval(f"SELECT COUNT(*) {base}", *params)

    params.extend([limit, offset])
    rows = await conn.fetch(
        f"""
        SELECT n.*, c.name AS candidate_name, c.election_type, c.zone_id,
               z.name AS zone_name,
               (SELECT COUNT(*) FROM nomination_documents d
                WHERE d.nomination_id = n.id) AS document_count
        {base}
        ORDER BY n.submitted_at ASC NULLS LAST, n.created_at ASC
        LIMIT ${param_num} OFFSET ${param_num + 1}
        """,
        *params,
    )
    return [_parse_nomination_row(row) for row in rows], total or 0


async def list_voter_nominations(
    conn: asyncpg.Connection, owner_voter_id: UUID
) -> list[dict[str, Any]]:
    """Nominations filed by one voter, newest first."""
    rows = await conn.fetch(
        """
        SELECT n.*, c.name AS candidate_name, c.election_type, c.zone_id,
               z.name AS zone_name
        FROM nominations n
        JOIN candidates c ON c.id = n.candidate_id
        JOIN zones z ON z.id = c.zone_id
        WHERE n.owner_voter_id = $1
        ORDER BY n.created_at DESC
        """,
        str(owner_voter_id),
    )
    return [_parse_nomination_row(row) for row in rows]


# ============================================
# DOCUMENTS
# ============================================


async def add_document(
    conn: asyncpg.Connection,
    nomination_id: UUID,
    document_type: str,
    content_type: str,
    file_name: str,
    owner_voter_id: UUID | None = None,
) -> dict[str, Any]:
    """
    Register a document and presign its upload.

    The upload URL is signed before the row is written, so a storage failure
    leaves no document behind. Returns the document row plus ``upload_url``.

    Raises:
        NominationNotFound: unknown nomination, or filed by another voter
        NominationReviewError: the nomination is already decided or withdrawn
        ValueError: document or content type not accepted
    """
    if document_type not in DOCUMENT_TYPES:
        raise ValueError(f"Document type must be one of: {', '.join(DOCUMENT_TYPES)}")

    async with conn.transaction():
        nomination = await _get_nomination_row(
            conn, nomination_id, for_update=True, owner_voter_id=owner_voter_id
        )
        if CandidateStatus(nomination["status"]) in TERMINAL_STATUSES:
            raise NominationReviewError(
                f"Documents cannot be added to a {nomination['status'].lower()} nomination",
                status=nomination["status"],
            )

        key = build_document_key(nomination["id"], document_type, content_type)
        upload_url = generate_document_upload_url(key, content_type)

        row = await conn.fetchrow(
            """
            INSERT INTO nomination_documents (
                nomination_id, document_type, storage_key, content_type, file_name
            )
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *
            """,
            nomination["id"],
            document_type,
            key,
            content_type,
            file_name,
        )
        document = _parse_document_row(row)
        await create_audit_log(
            conn,
            action_type=AuditAction.DOCUMENT_ATTACHED,
            actor_type=ActorType.VOTER if owner_voter_id else ActorType.SYSTEM,
            actor_id=owner_voter_id,
            resource_type="nominations",
            resource_id=nomination["id"],
            details={"document_type": document_type, "content_type": content_type},
        )

    document["upload_url"] = upload_url
    return document


async def list_documents(conn: asyncpg.Connection, nomination_id: UUID) -> list[dict]:
    rows = await conn.fetch(
        """
        SELECT * FROM nomination_documents
        WHERE nomination_id = $1
        ORDER BY uploaded_at ASC
        """,
        str(nomination_id),
    )
    return [_parse_document_row(row) for row in rows]


async def get_document_view_url(
    conn: asyncpg.Connection, nomination_id: UUID, document_id: UUID
) -> dict[str, Any] | None:
    """Time-limited download URL for one document of a nomination."""
    row = await conn.fetchrow(
        """
        SELECT * FROM nomination_documents
        WHERE id = $1 AND nomination_id = $2
        """,
        str(document_id),
        str(nomination_id),
    )
    document = _parse_document_row(row)
    if not document:
        return None

    document["view_url"] = generate_document_view_url(document["storage_key"])
    return document


# ============================================
# SUBMISSION & REVIEW
# ============================================


async def submit_nomination(
    conn: asyncpg.Connection,
    nomination_id: UUID,
    owner_voter_id: UUID | None = None,
) -> dict[str, Any]:
    """Move a PENDING nomination with at least one document to SUBMITTED."""
    async with conn.transaction():
        nomination = await _get_nomination_row(
            conn, nomination_id, for_update=True, owner_voter_id=owner_voter_id
        )
        if nomination["status"] != CandidateStatus.PENDING.value:
            raise NominationReviewError(
                "Only pending nominations can be submitted", status=nomination["status"]
            )

        documents = await conn.fetchval(
            "SELECT COUNT(*) FROM nomination_documents WHERE nomination_id = $1",
            nomination["id"],
        )
        if not documents:
            raise NominationReviewError("Attach at least one document before submitting")

        row = await conn.fetchrow(
            """
            UPDATE nominations
            SET status = $1, submitted_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
            WHERE id = $2
            RETURNING *
            """,
            CandidateStatus.SUBMITTED.value,
            nomination["id"],
        )
        await set_candidate_status(
            conn, UUID(nomination["candidate_id"]), CandidateStatus.SUBMITTED
        )
        await create_audit_log(
            conn,
            action_type=AuditAction.NOMINATION_SUBMITTED,
            actor_type=ActorType.VOTER if owner_voter_id else ActorType.SYSTEM,
            actor_id=owner_voter_id,
            resource_type="nominations",
            resource_id=nomination["id"],
        )

    return _parse_nomination_row(row)


async def withdraw_nomination(
    conn: asyncpg.Connection,
    nomination_id: UUID,
    owner_voter_id: UUID | None = None,
    reason: str | None = None,
) -> dict[str, Any]:
    """
    Withdraw a nomination that has not been decided yet.

    The candidate row moves to WITHDRAWN with it, which keeps the candidate
    off every ballot.

    Raises:
        NominationNotFound: unknown nomination, or filed by another voter
        NominationReviewError: already approved, rejected or withdrawn
    """
    async with conn.transaction():
        nomination = await _get_nomination_row(
            conn, nomination_id, for_update=True, owner_voter_id=owner_voter_id
        )
        current = CandidateStatus(nomination["status"])
        if current == CandidateStatus.WITHDRAWN:
            raise NominationReviewError(
                "Nomination has already been withdrawn", status=current.value
            )
        if current in DECISIONS:
            raise NominationReviewError(
                f"Cannot withdraw a nomination that has been {current.value.lower()}",
                status=current.value,
            )

        withdrawal_reason = (reason or "").strip() or DEFAULT_WITHDRAWAL_REASON
        row = await conn.fetchrow(
            """
            UPDATE nominations
            SET status = $1, withdrawal_reason = $2,
                withdrawn_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
            WHERE id = $3
            RETURNING *
            """,
            CandidateStatus.WITHDRAWN.value,
            withdrawal_reason,
            nomination["id"],
        )
        await set_candidate_status(
            conn, UUID(nomination["candidate_id"]), CandidateStatus.WITHDRAWN
        )
        await create_audit_log(
            conn,
            action_type=AuditAction.NOMINATION_WITHDRAWN,
            actor_type=ActorType.VOTER if owner_voter_id else ActorType.SYSTEM,
            actor_id=owner_voter_id,
            resource_type="nominations",
            resource_id=nomination["id"],
            details={"reason": withdrawal_reason, "previous_status": current.value},
        )

    logger.info(f"Nomination {nomination['id']} withdrawn from {current.value}")
    return _parse_nomination_row(row)


def check_review(
    current_status: str, decision: CandidateStatus, reason: str | None
) -> tuple[bool, str | None]:
    """
    Validate an admin decision against the nomination's state.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if decision not in DECISIONS:
        return False, "Decision must be APPROVED or REJECTED"
    if CandidateStatus(current_status) in TERMINAL_STATUSES:
        return False, f"Nomination is already {current_status}"
    if decision == CandidateStatus.REJECTED and not (reason and reason.strip()):
        return False, "A rejection reason is required"
    return True, None


async def review_nomination(
    conn: asyncpg.Connection,
    nomination_id: UUID,
    decision: CandidateStatus,
    reviewer_id: UUID,
    reason: str | None = None,
) -> dict[str, Any]:
    """
    Approve or reject a nomination.

    The nomination and its candidate are updated in one transaction. A
    rejected candidate with an email address is notified afterwards.
    """
    async with conn.transaction():
        nomination = await _get_nomination_row(conn, nomination_id, for_update=True)
        valid, error = check_review(nomination["status"], decision, reason)
        if not valid:
            raise NominationReviewError(error, status=nomination["status"])

        rejection_reason = reason.strip() if decision == CandidateStatus.REJECTED else None
        row = await conn.fetchrow(
            """
            UPDATE nominations
            SET status = $1, rejection_reason = $2, reviewed_by = $3,
                reviewed_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
            WHERE id = $4
            RETURNING *
            """,
            decision.value,
            rejection_reason,
            str(reviewer_id),
            nomination["id"],
        )
        candidate = await set_candidate_status(
            conn, UUID(nomination["candidate_id"]), decision, rejection_reason
        )
        await create_audit_log(
            conn,
            action_type=(
                AuditAction.NOMINATION_APPROVED
                if decision == CandidateStatus.APPROVED
                else AuditAction.NOMINATION_REJECTED
            ),
            actor_type=ActorType.ADMIN,
            actor_id=reviewer_id,
            resource_type="nominations",
            resource_id=nomination["id"],
            details={"reason": rejection_reason},
        )

    logger.info(f"Nomination {nomination['id']} {decision.value} by admin {reviewer_id}")

    if decision == CandidateStatus.REJECTED and candidate.get("email"):
        await email_service.send_nomination_rejected_email(
            candidate["email"],
            candidate["name"],
            ElectionType(candidate["election_type"]).display_name,
            rejection_reason,
        )

    reviewed = _parse_nomination_row(row)
    reviewed["candidate"] = candidate
    return reviewed


# ============================================
# HELPER FUNCTIONS
# ============================================


def _owned_by(nomination: dict[str, Any], owner_voter_id: UUID | None) -> bool:
    """True when no owner is required or the nomination belongs to it."""
    return owner_voter_id is None or nomination.get("owner_voter_id") == str(owner_voter_id)


async def _get_nomination_row(
    conn: asyncpg.Connection,
    nomination_id: UUID,
    for_update: bool = False,
    owner_voter_id: UUID | None = None,
) -> dict[str, Any]:
    query = "SELECT * FROM nominations WHERE id = $1"
    if for_update:
        query += " FOR UPDATE"
    nomination = _parse_nomination_row(await conn.fetchrow(query, str(nomination_id)))
    if not nomination or not _owned_by(nomination, owner_voter_id):
        raise NominationNotFound("Nomination not found", nomination_id=str(nomination_id))
    return nomination


def _parse_nomination_row(row: asyncpg.Record | None) -> dict[str, Any] | None:
    """Parse a nomination row into a dict."""
    if not row:
        return None

    result = dict(row)

    uuid_fields = ("id", "candidate_id", "owner_voter_id", "reviewed_by", "zone_id")
    for field in uuid_fields:
        if result.get(field) is not None:
            result[field] = str(result[field])

    return result


def _parse_document_row(row: asyncpg.Record | None) -> dict[str, Any] | None:
    if not row:
        return None

    result = dict(row)
    for field in ("id", "nomination_id"):
        result[field] = str(result[field])
    return result
