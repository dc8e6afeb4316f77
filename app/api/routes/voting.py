"""Voting API routes: eligibility and ballot submission for the signed-in voter."""

from typing import Annotated
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field

from app.api.deps import client_info, get_current_voter, get_results_composer
from app.core.database import get_db
from app.core.responses import success_response
from app.services import voting as voting_service
from app.services.candidates import list_approved_candidates
from app.services.eligibility import get_eligibility
from app.services.results import ResultsComposer
from app.services.zones import ElectionType

router = APIRouter(prefix="/voting", tags=["Voting"])


# ============================================
# PYDANTIC MODELS
# ============================================


class BallotRequest(BaseModel):
    """
    A ballot for one election.

    ``selections`` are candidate ids in preference order. Fewer selections
    than seats are only accepted with ``confirm_nota_fill``.
    """

    selections: list[UUID] = Field(default_factory=list, max_length=20)
    zone_id: UUID | None = None
    confirm_nota_fill: bool = False


# ============================================
# VOTER ENDPOINTS
# ============================================


@router.get("/{election_type}/eligibility")
async def check_eligibility(
    election_type: ElectionType,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    voter: Annotated[dict, Depends(get_current_voter)],
):
    """
    Eligibility of the signed-in voter for an election.

    Returns the assigned zone and its seat count, or the reason the voter is
    not eligible.
    """
    eligibility = await get_eligibility(conn, UUID(voter["id"]), election_type)
    eligibility["has_voted"] = voter[election_type.has_voted_column]
    return success_response(data=eligibility)


@router.get("/{election_type}/candidates")
async def list_ballot_candidates(
    election_type: ElectionType,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    voter: Annotated[dict, Depends(get_current_voter)],
):
    """Approved candidates on the signed-in voter's ballot."""
    eligibility = await get_eligibility(conn, UUID(voter["id"]), election_type)
    if not eligibility["eligible"]:
        return success_response(
            data={"eligibility": eligibility, "candidates": []},
            message="Not eligible for this election",
        )

    candidates = await list_approved_candidates(conn, UUID(eligibility["zone"]["id"]))
    return success_response(
        data={"eligibility": eligibility, "candidates": candidates}
    )


@router.post("/{election_type}/ballot", status_code=status.HTTP_201_CREATED)
async def submit_ballot(
    election_type: ElectionType,
    ballot: BallotRequest,
    http_request: Request,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    voter: Annotated[dict, Depends(get_current_voter)],
    composer: Annotated[ResultsComposer, Depends(get_results_composer)],
):
    """
    Submit the signed-in voter's ballot for one election.

    **Request Body:**
    ```json
    {
        "selections": ["<candidate uuid>", "<candidate uuid>"],
        "confirm_nota_fill": true
    }
    ```

    Errors carry a stable ``errors.code``: ALREADY_VOTED, ZONE_FROZEN,
    INVALID_CANDIDATE, SEAT_OVERFLOW, DUPLICATE_SELECTION,
    NOTA_CONFIRMATION_REQUIRED, NOT_ELIGIBLE.
    """
    ip_address, user_agent = client_info(http_request)

    receipt = await voting_service.submit_ballot(
        conn,
        voter_id=UUID(voter["id"]),
        election_type=election_type,
        selections=ballot.selections,
        zone_id=ballot.zone_id,
        confirm_nota_fill=ballot.confirm_nota_fill,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    composer.invalidate(election_type)

    return success_response(data=receipt, message="Ballot recorded")


@router.get("/{election_type}/ballot")
async def get_my_ballot(
    election_type: ElectionType,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    voter: Annotated[dict, Depends(get_current_voter)],
):
    """The signed-in voter's committed ballot lines for an election."""
    lines = await voting_service.get_ballot_lines(conn, UUID(voter["id"]), election_type)
    return success_response(
        data={
            "election_type": election_type.value,
            "has_voted": voter[election_type.has_voted_column],
            "ballot_lines": lines,
        }
    )
