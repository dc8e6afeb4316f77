"""API dependencies for voter and admin authentication."""

from typing import Annotated
from uuid import UUID

import asyncpg
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.database import get_db
from app.core.logging_config import security_logger
from app.core.security import ROLE_ADMIN, ROLE_VOTER, decode_access_token
from app.services.admins import get_admin_by_id
from app.services.results import ResultsComposer
from app.services.voters import get_voter

security = HTTPBearer(auto_error=False)


def _token_payload(credentials: HTTPAuthorizationCredentials | None) -> dict:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(credentials.credentials)
    if payload is None or payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


async def get_current_voter(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
) -> dict:
    """
    Dependency to get the OTP-verified voter making the request.

    Validates the JWT and loads the voter row.
    """
    payload = _token_payload(credentials)
    if payload.get("role") != ROLE_VOTER:
        security_logger.log_unauthorized_access("voter endpoint", payload.get("sub"), "not a voter token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Voter access required"
        )

    voter = await get_voter(conn, UUID(payload["sub"]))
    if voter is None or not voter["is_active"]:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Voter not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return voter


async def require_admin(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
) -> dict:
    """
    Dependency to require an admin token.

    Raises HTTP 403 if the token does not belong to an active admin.
    """
    payload = _token_payload(credentials)
    if payload.get("role") != ROLE_ADMIN:
        security_logger.log_unauthorized_access("admin endpoint", payload.get("sub"), "not an admin token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required"
        )

    admin = await get_admin_by_id(conn, UUID(payload["sub"]))
    if admin is None or not admin["is_active"]:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return admin


def get_results_composer(request: Request) -> ResultsComposer:
    """The application's results composer (and its cache)."""
    return request.app.state.results_composer


def client_info(request: Request) -> tuple[str | None, str | None]:
    """(ip_address, user_agent) of the caller."""
    ip_address = request.client.host if request.client else None
    return ip_address, request.headers.get("user-agent")
