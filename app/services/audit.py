"""Election audit trail for ballot, nomination and administration actions."""

import json
from typing import Any
from uuid import UUID

import asyncpg


# ============================================================================
# AUDIT LOG TYPES
# ============================================================================


class AuditAction:
    """Standard audit action types."""

    # Voting
    BALLOT_SUBMITTED = "ballot_submitted"

    # Nominations
    NOMINATION_CREATED = "nomination_created"
    NOMINATION_SUBMITTED = "nomination_submitted"
    NOMINATION_APPROVED = "nomination_approved"
    NOMINATION_REJECTED = "nomination_rejected"
    NOMINATION_WITHDRAWN = "nomination_withdrawn"
    DOCUMENT_ATTACHED = "document_attached"

    # Administration
    VOTER_REGISTERED = "voter_registered"
    VOTER_ROLL_UPLOADED = "voter_roll_uploaded"
    DATA_EXPORTED = "data_exported"
    VOTER_DEACTIVATED = "voter_deactivated"
    VOTER_REACTIVATED = "voter_reactivated"
    ZONE_FROZEN = "zone_frozen"
    ZONE_REOPENED = "zone_reopened"
    ADMIN_LOGIN = "admin_login"


class AuditSeverity:
    """Severity levels for audit logs."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class ActorType:
    VOTER = "voter"
    ADMIN = "admin"
    SYSTEM = "system"


# ============================================================================
# AUDIT LOG FUNCTIONS
# ============================================================================


async def create_audit_log(
    conn: asyncpg.Connection,
    action_type: str,
    actor_type: str = ActorType.SYSTEM,
    actor_id: UUID | str | None = None,
    resource_type: str | None = None,
    resource_id: UUID | str | None = None,
    severity: str = AuditSeverity.INFO,
    ip_address: str | None = None,
    user_agent: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create an audit log entry.

    Runs on the caller's connection, so inside a transaction the entry is
    committed or rolled back together with the action it records.

    Args:
        conn: Database connection
        action_type: Type of action (use AuditAction constants)
        actor_type: voter, admin or system
        actor_id: ID of the voter or admin performing the action
        resource_type: Type of resource affected (votes, nominations, zones, ...)
        resource_id: ID of specific resource affected
        severity: Log severity (info, warning, critical)
        ip_address: IP address of the actor
        user_agent: User agent string
        details: Additional details stored as JSONB

    Returns:
        Created audit log entry
    """
    result = await conn.fetchrow(
        """
        INSERT INTO election_audit_log (
            actor_type, actor_id, action_type, resource_type, resource_id,
            severity, ip_address, user_agent, details
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9::jsonb)
        RETURNING id, actor_type, actor_id, action_type, resource_type,
                  resource_id, severity, details, timestamp
        """,
        actor_type,
        str(actor_id) if actor_id else None,
        action_type,
        resource_type,
        str(resource_id) if resource_id else None,
        severity,
        ip_address,
        user_agent,
        json.dumps(details or {}, default=str),
    )

    return _parse_audit_row(result) or {}


async def list_audit_logs(
    conn: asyncpg.Connection,
    action_type: str | None = None,
    resource_type: str | None = None,
    resource_id: UUID | None = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[dict[str, Any]], int]:
    """List audit logs, newest first.

    Returns:
        Tuple of (logs list, total count)
    """
    conditions = []
    params: list[Any] = []
    param_num = 1

    if action_type:
        conditions.append(f"action_type = ${param_num}")
        params.append(action_type)
        param_num += 1

    if resource_type:
        conditions.append(f"resource_type = ${param_num}")
        params.append(resource_type)
        param_num += 1

    if resource_id:
        conditions.append(f"resource_id = ${param_num}")
        params.append(str(resource_id))
        param_num += 1

    where_clause = "WHERE " + " AND ".join(conditions) if conditions else ""

    total_count = await conn.fetchval(
        f"SELECT COUNT(*) FROM election_audit_log {where_clause}", *params
    )

    offset = (page - 1) * limit
    params.extend([limit, offset])
    results = await conn.fetch(
        f"""
        SELECT id, actor_type, actor_id, action_type, resource_type,
               resource_id, severity, details, timestamp
        FROM election_audit_log
        {where_clause}
        ORDER BY timestamp DESC
        LIMIT ${param_num} OFFSET ${param_num + 1}
        """,
        *params,
    )

    return [_parse_audit_row(row) for row in results], total_count or 0


def _parse_audit_row(row: asyncpg.Record | None) -> dict[str, Any] | None:
    if not row:
        return None

    result = dict(row)
    for field in ("id", "actor_id", "resource_id"):
        if result.get(field) is not None:
            result[field] = str(result[field])
    if isinstance(result.get("details"), str):
        result["details"] = json.loads(result["details"])
    return result
