"""Election administrator accounts."""

from typing import Any
from uuid import UUID

import asyncpg

from app.core.security import hash_password, verify_password
from app.services.audit import ActorType, AuditAction, create_audit_log


async def create_admin(
    conn: asyncpg.Connection,
    username: str,
    password: str,
    email: str | None = None,
) -> dict[str, Any] | None:
    """Create a new admin. Returns None when the username is taken."""
    result = await conn.fetchrow(
        """
        INSERT INTO admins (username, password_hash, email)
        VALUES ($1, $2, $3)
        ON CONFLICT (username) DO NOTHING
        RETURNING id, username, email, is_active, created_at
        """,
        username,
        hash_password(password),
        email,
    )
    return _parse_admin_row(result)


async def get_admin_by_id(
    conn: asyncpg.Connection, admin_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        SELECT id, username, email, is_active, created_at, last_login
        FROM admins
        WHERE id = $1
        """,
        str(admin_id),
    )
    return _parse_admin_row(result)


async def get_admin_by_username(
    conn: asyncpg.Connection, username: str
) -> dict[str, Any] | None:
    """Get admin by username, including the password hash."""
    result = await conn.fetchrow(
        """
        SELECT id, username, email, password_hash, is_active, created_at, last_login
        FROM admins
        WHERE username = $1
        """,
        username,
    )
    return _parse_admin_row(result)


async def authenticate_admin(
    conn: asyncpg.Connection, username: str, password: str
) -> tuple[dict[str, Any] | None, str | None]:
    """
    Check admin credentials.

    Returns:
        Tuple of (admin, failure_reason)
    """
    admin = await get_admin_by_username(conn, username)
    if not admin:
        return None, "unknown username"
    if not admin["is_active"]:
        return None, "account disabled"
    if not verify_password(password, admin["password_hash"]):
        return None, "invalid password"

    await conn.execute(
        "UPDATE admins SET last_login = CURRENT_TIMESTAMP WHERE id = $1",
        admin["id"],
    )
    await create_audit_log(
        conn,
        action_type=AuditAction.ADMIN_LOGIN,
        actor_type=ActorType.ADMIN,
        actor_id=admin["id"],
        resource_type="admins",
        resource_id=admin["id"],
    )
    admin.pop("password_hash")
    return admin, None


def _parse_admin_row(row: asyncpg.Record | None) -> dict[str, Any] | None:
    if not row:
        return None
    result = dict(row)
    result["id"] = str(result["id"])
    return result
