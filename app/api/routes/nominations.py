"""
Candidate nomination routes.

A nomination is filed by an OTP-verified voter and only that voter can read,
extend, submit or withdraw it.
"""

from typing import Annotated, Any
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from app.api.deps import get_current_voter
from app.core.database import get_db
from app.core.exceptions import NominationNotFound
from app.core.responses import success_response
from app.core.validation import normalize_email, normalize_phone
from app.services import nominations as nomination_service
from app.services.zones import ElectionType

router = APIRouter(prefix="/nominations", tags=["Nominations"])


# ============================================
# PYDANTIC MODELS
# ============================================


class NominationCreate(BaseModel):
    """
    Nomination form.

    ``experience`` and ``education`` may be free text or an object of
    details; both are stored as tagged profile fields.
    """

    name: str = Field(..., min_length=2, max_length=200)
    election_type: ElectionType
    zone_id: UUID
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, min_length=10, max_length=20)
    region: str | None = Field(None, max_length=100)
    position: str | None = Field(None, max_length=100)
    experience: str | dict[str, Any] | None = None
    education: str | dict[str, Any] | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        return normalize_email(v) if v else None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return normalize_phone(v) if v else None


class DocumentCreate(BaseModel):
    document_type: str = Field(..., max_length=50)
    content_type: str = Field(..., max_length=100)
    file_name: str = Field(..., min_length=1, max_length=255)


class NominationWithdraw(BaseModel):
    reason: str | None = Field(None, max_length=1000)


# ============================================
# CANDIDATE ENDPOINTS
# ============================================


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_nomination(
    request: NominationCreate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    voter: Annotated[dict, Depends(get_current_voter)],
):
    """Start a nomination. It stays PENDING until documents are attached and it is submitted."""
    nomination = await nomination_service.create_nomination(
        conn,
        name=request.name,
        election_type=request.election_type,
        zone_id=request.zone_id,
        owner_voter_id=UUID(voter["id"]),
        email=request.email,
        phone=request.phone,
        region=request.region,
        position=request.position,
        experience=request.experience,
        education=request.education,
    )
    return success_response(data=nomination, message="Nomination created")


@router.get("")
async def list_my_nominations(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    voter: Annotated[dict, Depends(get_current_voter)],
):
    nominations = await nomination_service.list_voter_nominations(conn, UUID(voter["id"]))
    return success_response(data={"nominations": nominations})


@router.get("/{nomination_id}")
async def get_nomination(
    nomination_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    voter: Annotated[dict, Depends(get_current_voter)],
):
    nomination = await nomination_service.get_nomination(
        conn, nomination_id, owner_voter_id=UUID(voter["id"])
    )
    if not nomination:
        raise NominationNotFound("Nomination not found", nomination_id=str(nomination_id))
    return success_response(data=nomination)


@router.post("/{nomination_id}/documents", status_code=status.HTTP_201_CREATED)
async def add_document(
    nomination_id: UUID,
    request: DocumentCreate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    voter: Annotated[dict, Depends(get_current_voter)],
):
    """
    Register a document and get a presigned upload URL.

    Only PDF, JPEG and PNG are accepted. Upload the file with
    ``PUT upload_url`` and the same ``Content-Type``.
    """
    try:
        document = await nomination_service.add_document(
            conn,
            nomination_id,
            document_type=request.document_type,
            content_type=request.content_type,
            file_name=request.file_name,
            owner_voter_id=UUID(voter["id"]),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return success_response(data=document)


@router.post("/{nomination_id}/submit")
async def submit_nomination(
    nomination_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    voter: Annotated[dict, Depends(get_current_voter)],
):
    """Hand the nomination over for admin review."""
    nomination = await nomination_service.submit_nomination(
        conn, nomination_id, owner_voter_id=UUID(voter["id"])
    )
    return success_response(data=nomination, message="Nomination submitted for review")


@router.post("/{nomination_id}/withdraw")
async def withdraw_nomination(
    nomination_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    voter: Annotated[dict, Depends(get_current_voter)],
    request: NominationWithdraw | None = None,
):
    """
    Withdraw a nomination before it is decided.

    Approved or rejected nominations cannot be withdrawn.
    """
    nomination = await nomination_service.withdraw_nomination(
        conn,
        nomination_id,
        owner_voter_id=UUID(voter["id"]),
        reason=request.reason if request else None,
    )
    return success_response(data=nomination, message="Nomination withdrawn")
