"""Turnout and results routes for the admin dashboards."""

from typing import Annotated
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends

from app.api.deps import get_results_composer, require_admin
from app.core.database import get_db
from app.core.responses import success_response
from app.services.results import ResultsComposer
from app.services.turnout import candidate_tallies, compute_zone_turnout
from app.services.zones import ElectionType

router = APIRouter(prefix="/results", tags=["Results"])


@router.get("")
async def get_all_results(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    composer: Annotated[ResultsComposer, Depends(get_results_composer)],
    admin: Annotated[dict, Depends(require_admin)],
):
    """Summaries of all three elections."""
    return success_response(data=await composer.compose_all(conn))


@router.get("/zones/{zone_id}/turnout")
async def get_zone_turnout(
    zone_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
):
    """Turnout of one zone, computed live."""
    return success_response(data=await compute_zone_turnout(conn, zone_id))


@router.get("/zones/{zone_id}/tallies")
async def get_zone_tallies(
    zone_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin: Annotated[dict, Depends(require_admin)],
):
    """Votes per approved candidate of a zone, plus NOTA lines."""
    return success_response(data=await candidate_tallies(conn, zone_id))


@router.get("/{election_type}")
async def get_election_results(
    election_type: ElectionType,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    composer: Annotated[ResultsComposer, Depends(get_results_composer)],
    admin: Annotated[dict, Depends(require_admin)],
):
    """
    Per-zone turnout summary of one election.

    Served from a short-lived cache; a ballot in this election clears it.
    """
    return success_response(data=await composer.compose(conn, election_type))
