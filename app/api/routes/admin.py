"""Admin routes: voter roll, zone freezing, nomination review and data export."""

from datetime import UTC, datetime
from typing import Annotated, Any, Literal
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from app.api.deps import client_info, get_results_composer, require_admin
from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import NominationNotFound, ZoneNotFound
from app.core.responses import not_found_response, success_response
from app.core.validation import parse_dob
from app.services import export as export_service
from app.services import nominations as nomination_service
from app.services import voters as voter_service
from app.services.audit import ActorType, AuditAction, create_audit_log, list_audit_logs
from app.services.candidates import CandidateStatus
from app.services.results import ResultsComposer
from app.services.zones import ElectionType, seed_zones, set_zone_frozen
from app.utils.csv_io import parse_csv_rows, rows_to_csv

router = APIRouter(prefix="/admin", tags=["Admin"])


# ============================================
# PYDANTIC MODELS
# ============================================


class VoterCreate(BaseModel):
    voter_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    region: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(None, min_length=10, max_length=20)
    email: str | None = Field(None, max_length=255)
    dob: str | None = Field(None, description="Date of birth, DD/MM/YYYY")
    age: int | None = Field(None, ge=0, le=130)

    @field_validator("dob")
    @classmethod
    def validate_dob(cls, v: str | None) -> str | None:
        if v:
            parse_dob(v)
        return v

    @model_validator(mode="after")
    def has_contact(self) -> "VoterCreate":
        if not self.phone and not self.email:
            raise ValueError("A voter needs a phone number or an email address")
        return self


class VoterRollUpload(BaseModel):
    """Rows are checked one by one, so bad rows do not fail the request."""

    voters: list[dict[str, Any]]


class VoterActiveUpdate(BaseModel):
    is_active: bool


class ZoneFreezeUpdate(BaseModel):
    frozen: bool


class NominationReview(BaseModel):
    decision: CandidateStatus
    reason: str | None = Field(None, max_length=1000)


# ============================================
# VOTER ROLL
# ============================================


@router.post("/voters", status_code=status.HTTP_201_CREATED)
async def register_voter(
    request: VoterCreate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
):
    """Add a voter; zones are assigned from region and date of birth."""
    try:
        voter = await voter_service.register_voter(
            conn,
            voter_id=request.voter_id,
            name=request.name,
            region=request.region,
            phone=request.phone,
            email=request.email,
            dob=request.dob,
            age=request.age,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not voter:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Voter {request.voter_id} is already registered",
        )

    await create_audit_log(
        conn,
        action_type=AuditAction.VOTER_REGISTERED,
        actor_type=ActorType.ADMIN,
        actor_id=admin["id"],
        resource_type="voters",
        resource_id=voter["id"],
    )
    return success_response(data=voter, message="Voter registered")


@router.post("/voters/upload")
async def upload_voter_roll(
    http_request: Request,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
):
    """
    Add voters in bulk.

    Send ``text/csv`` with a heading row, or JSON ``{"voters": [...]}``.
    Columns: voter_id, name, region, phone, email, dob (DD/MM/YYYY), age.
    Each row is reported as created, skipped (already registered) or an error.
    """
    body = await http_request.body()
    if http_request.headers.get("content-type", "").startswith("text/csv"):
        try:
            rows = parse_csv_rows(body.decode("utf-8"))
        except UnicodeDecodeError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="CSV must be UTF-8 encoded"
            )
    else:
        try:
            rows = VoterRollUpload.model_validate_json(body).voters
        except ValidationError as e:
            raise RequestValidationError(e.errors())

    if not rows:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No voter rows found")
    if len(rows) > settings.VOTER_UPLOAD_MAX_ROWS:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Upload at most {settings.VOTER_UPLOAD_MAX_ROWS} voters at a time",
        )

    report = await voter_service.register_voters_bulk(conn, rows)

    ip_address, user_agent = client_info(http_request)
    await create_audit_log(
        conn,
        action_type=AuditAction.VOTER_ROLL_UPLOADED,
        actor_type=ActorType.ADMIN,
        actor_id=admin["id"],
        resource_type="voters",
        ip_address=ip_address,
        user_agent=user_agent,
        details={
            "rows": len(rows),
            "created": len(report["created"]),
            "skipped": len(report["skipped"]),
            "errors": len(report["errors"]),
        },
    )
    return success_response(
        data=report,
        message=f"{len(report['created'])} of {len(rows)} voters registered",
    )


@router.get("/voters")
async def list_voters(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
    region: str | None = None,
    zone_id: UUID | None = None,
    election_type: ElectionType | None = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    voters, total = await voter_service.list_voters(
        conn,
        region=region,
        zone_id=zone_id,
        election_type=election_type,
        limit=limit,
        offset=offset,
    )
    return success_response(data={"voters": voters, "total": total})


@router.get("/voters/{voter_id}")
async def get_voter(
    voter_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
):
    voter = await voter_service.get_voter(conn, voter_id)
    if not voter:
        not_found_response("Voter")
    return success_response(data=voter)


@router.put("/voters/{voter_id}/active")
async def set_voter_active(
    voter_id: UUID,
    request: VoterActiveUpdate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
):
    """Deactivate or reactivate a voter. Has-voted flags are never touched."""
    voter = await voter_service.set_voter_active(conn, voter_id, request.is_active)
    if not voter:
        not_found_response("Voter")

    await create_audit_log(
        conn,
        action_type=(
            AuditAction.VOTER_REACTIVATED if request.is_active else AuditAction.VOTER_DEACTIVATED
        ),
        actor_type=ActorType.ADMIN,
        actor_id=admin["id"],
        resource_type="voters",
        resource_id=voter_id,
    )
    return success_response(data=voter)


# ============================================
# ZONES
# ============================================


@router.post("/zones/seed")
async def seed_zone_registry(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
):
    created = await seed_zones(conn)
    return success_response(data={"created": created})


@router.put("/zones/{zone_id}/freeze")
async def freeze_zone(
    zone_id: UUID,
    request: ZoneFreezeUpdate,
    http_request: Request,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
    composer: Annotated[ResultsComposer, Depends(get_results_composer)],
):
    """Close (or reopen) voting in a zone."""
    zone = await set_zone_frozen(conn, zone_id, request.frozen)
    if not zone:
        raise ZoneNotFound("Zone not found", zone_id=str(zone_id))

    ip_address, user_agent = client_info(http_request)
    await create_audit_log(
        conn,
        action_type=AuditAction.ZONE_FROZEN if request.frozen else AuditAction.ZONE_REOPENED,
        actor_type=ActorType.ADMIN,
        actor_id=admin["id"],
        resource_type="zones",
        resource_id=zone_id,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    composer.invalidate(ElectionType(zone["election_type"]))
    return success_response(data=zone)


# ============================================
# NOMINATION REVIEW
# ============================================


@router.get("/nominations")
async def list_nominations(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
    nomination_status: Annotated[CandidateStatus | None, Query(alias="status")] = None,
    election_type: ElectionType | None = None,
    zone_id: UUID | None = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    nominations, total = await nomination_service.list_nominations(
        conn,
        status=nomination_status,
        election_type=election_type,
        zone_id=zone_id,
        limit=limit,
        offset=offset,
    )
    return success_response(data={"nominations": nominations, "total": total})


@router.put("/nominations/{nomination_id}/review")
async def review_nomination(
    nomination_id: UUID,
    request: NominationReview,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
):
    """
    Approve or reject a submitted nomination.

    **Request Body:**
    ```json
    {"decision": "REJECTED", "reason": "Age proof missing"}
    ```
    """
    nomination = await nomination_service.review_nomination(
        conn,
        nomination_id,
        decision=request.decision,
        reviewer_id=UUID(admin["id"]),
        reason=request.reason,
    )
    return success_response(
        data=nomination, message=f"Nomination {request.decision.value.lower()}"
    )


@router.get("/nominations/{nomination_id}/documents/{document_id}/url")
async def get_document_url(
    nomination_id: UUID,
    document_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
):
    """Time-limited link for viewing a nomination document."""
    document = await nomination_service.get_document_view_url(conn, nomination_id, document_id)
    if not document:
        raise NominationNotFound(
            "Document not found",
            nomination_id=str(nomination_id),
            document_id=str(document_id),
        )
    return success_response(data=document)


# ============================================
# DATA EXPORT
# ============================================


@router.get("/export")
async def export_data(
    http_request: Request,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
    dataset: Literal["voters", "candidates", "turnout"],
    format: Literal["json", "csv"] = "json",
):
    """
    Export the voter roll, candidates or per-zone turnout.

    Query Parameters:
    - dataset: voters, candidates or turnout
    - format: json (default) or csv
    """
    rows = await export_service.export_dataset(conn, dataset)

    ip_address, user_agent = client_info(http_request)
    await create_audit_log(
        conn,
        action_type=AuditAction.DATA_EXPORTED,
        actor_type=ActorType.ADMIN,
        actor_id=admin["id"],
        ip_address=ip_address,
        user_agent=user_agent,
        details={"dataset": dataset, "format": format, "rows": len(rows)},
    )

    if format == "csv":
        filename = f"{dataset}_{datetime.now(UTC).strftime('%Y%m%d')}.csv"
        return StreamingResponse(
            iter([rows_to_csv(rows, leading=export_service.LEADING_COLUMNS[dataset])]),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    return success_response(
        data={dataset: rows, "count": len(rows)},
        message=f"Exported {len(rows)} {dataset} rows",
    )


# ============================================
# AUDIT LOG
# ============================================


@router.get("/audit-logs")
async def get_audit_logs(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
    action_type: str | None = None,
    resource_type: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
):
    logs, total = await list_audit_logs(
        conn, action_type=action_type, resource_type=resource_type, page=page, limit=limit
    )
    return success_response(data={"logs": logs, "total": total, "page": page})
