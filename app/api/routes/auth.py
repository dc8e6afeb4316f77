"""Authentication routes: voter OTP login and admin password login."""

from typing import Annotated

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field, model_validator

from app.api.deps import client_info
from app.core.database import get_db
from app.core.logging_config import get_logger, security_logger
from app.core.rate_limiting import login_rate_limiter
from app.core.responses import success_response
from app.core.security import create_admin_token, create_voter_token
from app.services import otp as otp_service
from app.services.admins import authenticate_admin
from app.services.eligibility import resolve_eligibility
from app.services.zones import ElectionType, get_zone

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = get_logger(__name__)


class VoterContactRequest(BaseModel):
    """A voter identifies with exactly one of phone or email."""

    phone: str | None = Field(None, min_length=10, max_length=20)
    email: str | None = Field(None, max_length=255)

    @model_validator(mode="after")
    def one_contact(self) -> "VoterContactRequest":
        if bool(self.phone) == bool(self.email):
            raise ValueError("Provide either a phone number or an email address")
        return self


class VerifyOtpRequest(VoterContactRequest):
    otp: str = Field(..., min_length=4, max_length=8, pattern=r"^\d+$")


class AdminLoginRequest(BaseModel):
    username: str = Field(..., max_length=50)
    password: str = Field(..., max_length=128)


# ============================================
# VOTER OTP LOGIN
# ============================================


@router.post("/voter/send-otp")
async def send_voter_otp(
    request: VoterContactRequest,
    http_request: Request,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
):
    """
    Send a 6-digit login code to a registered voter.

    **Request Body:**
    ```json
    {"phone": "9876543210"}
    ```
    """
    ip_address, _ = client_info(http_request)
    try:
        success, message = await otp_service.request_voter_otp(
            conn, phone=request.phone, email=request.email, ip_address=ip_address
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not success:
        code = (
            status.HTTP_429_TOO_MANY_REQUESTS
            if message.startswith("Too many")
            else status.HTTP_400_BAD_REQUEST
        )
        raise HTTPException(status_code=code, detail=message)

    return success_response(message=message)


@router.post("/voter/verify-otp")
async def verify_voter_otp(
    request: VerifyOtpRequest,
    http_request: Request,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
):
    """
    Exchange a login code for a voter token.

    The response lists the voter's eligibility for each election so the
    client can offer only the ballots the voter may cast.
    """
    ip_address, _ = client_info(http_request)
    try:
        success, message, voter = await otp_service.verify_voter_otp(
            conn,
            request.otp,
            phone=request.phone,
            email=request.email,
            ip_address=ip_address,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not success:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)

    elections = {}
    for election_type in ElectionType:
        zone_id = voter.get(election_type.zone_column)
        zone = await get_zone(conn, zone_id) if zone_id else None
        eligibility = resolve_eligibility(voter, election_type, zone)
        elections[election_type.value] = {
            "eligible": eligibility["eligible"],
            "reason": eligibility["reason"],
            "has_voted": voter[election_type.has_voted_column],
        }

    return success_response(
        data={
            "access_token": create_voter_token(voter["id"]),
            "token_type": "bearer",
            "voter": {
                "id": voter["id"],
                "voter_id": voter["voter_id"],
                "name": voter["name"],
                "region": voter["region"],
            },
            "elections": elections,
        },
        message=message,
    )


# ============================================
# ADMIN LOGIN
# ============================================


@router.post("/admin/login")
async def admin_login(
    request: AdminLoginRequest,
    http_request: Request,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
):
    """
    Authenticate an admin and return a JWT.

    - Max 5 attempts per username per 5 minutes, then a 15 minute lockout
    - Max 10 attempts per IP per 5 minutes
    """
    client_ip, _ = client_info(http_request)

    allowed, error_msg = login_rate_limiter.check_login_allowed(request.username, client_ip)
    if not allowed:
        security_logger.log_login_attempt(request.username, False, client_ip, "rate_limited")
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=error_msg)

    admin, reason = await authenticate_admin(conn, request.username, request.password)
    if not admin:
        login_rate_limiter.record_failed_attempt(request.username, client_ip)
        security_logger.log_login_attempt(request.username, False, client_ip, reason)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    login_rate_limiter.record_successful_login(request.username, client_ip)
    security_logger.log_login_attempt(request.username, True, client_ip)

    return success_response(
        data={
            "access_token": create_admin_token(admin["id"], admin["username"]),
            "token_type": "bearer",
            "admin": admin,
        }
    )
