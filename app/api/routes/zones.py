"""Zone registry routes."""

from typing import Annotated

import asyncpg
from fastapi import APIRouter, Depends, Query

from app.core.database import get_db
from app.core.responses import success_response
from app.services.zones import ElectionType, list_zones

router = APIRouter(prefix="/zones", tags=["Zones"])


@router.get("")
async def get_zones(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    election_type: Annotated[ElectionType | None, Query()] = None,
):
    """Active zones with their seat counts, optionally for one election."""
    zones = await list_zones(conn, election_type=election_type)
    return success_response(data=zones)
