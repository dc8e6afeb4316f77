"""Zone/seat registry: electoral zones, their seat counts and election types."""

from enum import Enum
from uuid import UUID

import asyncpg

from app.core.logging_config import get_logger

logger = get_logger(__name__)


class ElectionType(str, Enum):
    """The three elections run by the community."""

    YUVA_PANKH = "yuva_pankh"
    KAROBARI = "karobari"
    TRUSTEE = "trustee"

    @property
    def display_name(self) -> str:
        return ELECTION_DISPLAY_NAMES[self]

    @property
    def zone_column(self) -> str:
        """Voter column holding the zone assignment for this election."""
        return f"{self.value}_zone_id"

    @property
    def has_voted_column(self) -> str:
        """Voter column holding the has-voted flag for this election."""
        return f"has_voted_{self.value}"


ELECTION_DISPLAY_NAMES = {
    ElectionType.YUVA_PANKH: "Yuva Pankh Samiti",
    ElectionType.KAROBARI: "Karobari Samiti",
    ElectionType.TRUSTEE: "Trust Mandal",
}


# ============================================
# SEED DATA
# ============================================

ZONE_SEED: list[dict] = [
    # Yuva Pankh
    {
        "code": "RAIGAD",
        "name": "Raigad",
        "name_local": "રાયગઢ",
        "description": "Raigad, Pune, Ratnagiri, Kolhapur, Sangli",
        "seats": 3,
        "election_type": ElectionType.YUVA_PANKH,
    },
    {
        "code": "KARNATAKA_GOA",
        "name": "Karnataka & Goa",
        "name_local": "કર્ણાટક અને ગોવા",
        "description": "Karnataka & Goa State",
        "seats": 1,
        "election_type": ElectionType.YUVA_PANKH,
    },
    # Karobari (21 seats)
    {
        "code": "RAIGAD",
        "name": "Raigad",
        "name_local": "રાયગઢ",
        "description": "Raigad (including Khapdar), Pune, Ratnagiri, Kolhapur, Sangli",
        "seats": 4,
        "election_type": ElectionType.KAROBARI,
    },
    {
        "code": "MUMBAI",
        "name": "Mumbai",
        "name_local": "મુંબઈ",
        "description": "Mumbai, Thane, Navi Mumbai, Nashik and other states & overseas",
        "seats": 6,
        "election_type": ElectionType.KAROBARI,
    },
    {
        "code": "KARNATAKA_GOA",
        "name": "Karnataka & Goa",
        "name_local": "કર્ણાટક અને ગોવા",
        "description": "Karnataka & Goa state",
        "seats": 1,
        "election_type": ElectionType.KAROBARI,
    },
    {
        "code": "ABDASA",
        "name": "Abdasa",
        "name_local": "અબડાસા",
        "description": "All villages of Abdasa taluka",
        "seats": 1,
        "election_type": ElectionType.KAROBARI,
    },
    {
        "code": "GARADA",
        "name": "Garada",
        "name_local": "ગરડા",
        "description": "Nakhatrana and Lakhpat talukas",
        "seats": 2,
        "election_type": ElectionType.KAROBARI,
    },
    {
        "code": "BHUJ",
        "name": "Bhuj",
        "name_local": "ભુજ",
        "description": "Bhuj, Mirzapar, Madhapar (taluka - Bhuj)",
        "seats": 3,
        "election_type": ElectionType.KAROBARI,
    },
    {
        "code": "ANJAR",
        "name": "Anjar",
        "name_local": "અંજાર",
        "description": "Anjar, Adipur, Mandvi, Mundra, Gandhidham, Shinoi, Bhadreshwar, Khedoi",
        "seats": 1,
        "election_type": ElectionType.KAROBARI,
    },
    {
        "code": "ANYA_GUJARAT",
        "name": "Anya Gujarat",
        "name_local": "અન્ય ગુજરાત",
        "description": "Ahmedabad, Valsad, Surat, Vadodara and the rest of Gujarat",
        "seats": 3,
        "election_type": ElectionType.KAROBARI,
    },
    # Trustee (7 seats)
    {
        "code": "MUMBAI",
        "name": "Mumbai",
        "name_local": "મુંબઈ",
        "description": "Mumbai, Thane, Navi Mumbai, Nashik and other states & overseas",
        "seats": 2,
        "election_type": ElectionType.TRUSTEE,
    },
    {
        "code": "RAIGAD",
        "name": "Raigad",
        "name_local": "રાયગઢ",
        "description": "Raigad, Pune, Ratnagiri, Kolhapur, Sangli",
        "seats": 1,
        "election_type": ElectionType.TRUSTEE,
    },
    {
        "code": "ABDASA_GARDA",
        "name": "Abdasa & Garda",
        "name_local": "અબડાસા અને ગરડા",
        "description": "Abdasa, Garda, Naliya, Kothara, Nakhatrana and other villages",
        "seats": 1,
        "election_type": ElectionType.TRUSTEE,
    },
    {
        "code": "KARNATAKA_GOA",
        "name": "Karnataka & Goa",
        "name_local": "કર્ણાટક અને ગોવા",
        "description": "Karnataka & Goa State",
        "seats": 1,
        "election_type": ElectionType.TRUSTEE,
    },
    {
        "code": "ANJAR_ANYA_GUJARAT",
        "name": "Anjar & Anya Gujarat",
        "name_local": "અંજાર અને અન્ય ગુજરાત",
        "description": "Anjar, Mundra, Adipur, Mandvi, Gandhidham and the rest of Gujarat",
        "seats": 1,
        "election_type": ElectionType.TRUSTEE,
    },
    {
        "code": "BHUJ",
        "name": "Bhuj",
        "name_local": "ભુજ",
        "description": "Bhuj, Mirzapar, Madhapar (taluka - Bhuj)",
        "seats": 1,
        "election_type": ElectionType.TRUSTEE,
    },
]

# Region (as recorded on the voter roll) -> zone code per election.
# Yuva Pankh only has zones for Raigad and Karnataka & Goa.
REGION_ZONE_CODES: dict[str, dict[ElectionType, str | None]] = {
    "Mumbai": {
        ElectionType.YUVA_PANKH: None,
        ElectionType.KAROBARI: "MUMBAI",
        ElectionType.TRUSTEE: "MUMBAI",
    },
    "Raigad": {
        ElectionType.YUVA_PANKH: "RAIGAD",
        ElectionType.KAROBARI: "RAIGAD",
        ElectionType.TRUSTEE: "RAIGAD",
    },
    "Karnataka & Goa": {
        ElectionType.YUVA_PANKH: "KARNATAKA_GOA",
        ElectionType.KAROBARI: "KARNATAKA_GOA",
        ElectionType.TRUSTEE: "KARNATAKA_GOA",
    },
    "Bhuj": {
        ElectionType.YUVA_PANKH: None,
        ElectionType.KAROBARI: "BHUJ",
        ElectionType.TRUSTEE: "BHUJ",
    },
    "Anjar": {
        ElectionType.YUVA_PANKH: None,
        ElectionType.KAROBARI: "ANJAR",
        ElectionType.TRUSTEE: "ANJAR_ANYA_GUJARAT",
    },
    "Abdasa": {
        ElectionType.YUVA_PANKH: None,
        ElectionType.KAROBARI: "ABDASA",
        ElectionType.TRUSTEE: "ABDASA_GARDA",
    },
    "Garda": {
        ElectionType.YUVA_PANKH: None,
        ElectionType.KAROBARI: "GARADA",
        ElectionType.TRUSTEE: "ABDASA_GARDA",
    },
    "Anya Gujarat": {
        ElectionType.YUVA_PANKH: None,
        ElectionType.KAROBARI: "ANYA_GUJARAT",
        ElectionType.TRUSTEE: "ANJAR_ANYA_GUJARAT",
    },
}


def zone_codes_for_region(region: str) -> dict[ElectionType, str | None]:
    """Zone code per election for a voter-roll region (case-insensitive)."""
    wanted = region.strip().lower()
    for name, codes in REGION_ZONE_CODES.items():
        if name.lower() == wanted:
            return dict(codes)
    return {election_type: None for election_type in ElectionType}


# ============================================
# REGISTRY OPERATIONS
# ============================================


async def seed_zones(conn: asyncpg.Connection) -> int:
    """Insert the zone registry. Existing (code, election_type) rows are left untouched."""
    created = 0
    for zone in ZONE_SEED:
        result = await conn.execute(
            """
            INSERT INTO zones (code, name, name_local, description, seats, election_type)
            VALUES ($1, $2, $3, $4, $5, $6)
            ON CONFLICT (code, election_type) DO NOTHING
            """,
            zone["code"],
            zone["name"],
            zone["name_local"],
            zone["description"],
            zone["seats"],
            zone["election_type"].value,
        )
        created += int(result.split()[-1])
    logger.info(f"Zone registry seeded: {created} new zone(s)")
    return created


async def get_zone(conn: asyncpg.Connection, zone_id: UUID) -> dict | None:
    """Get zone by ID."""
    result = await conn.fetchrow("SELECT * FROM zones WHERE id = $1", str(zone_id))
    return _parse_zone_row(result)


async def get_zone_by_code(
    conn: asyncpg.Connection, code: str, election_type: ElectionType
) -> dict | None:
    result = await conn.fetchrow(
        "SELECT * FROM zones WHERE code = $1 AND election_type = $2",
        code,
        election_type.value,
    )
    return _parse_zone_row(result)


async def list_zones(
    conn: asyncpg.Connection,
    election_type: ElectionType | None = None,
    active_only: bool = True,
) -> list[dict]:
    """List zones ordered by name, optionally filtered by election type."""
    query = "SELECT * FROM zones WHERE TRUE"
    params: list = []

    if election_type:
        params.append(election_type.value)
        query += f" AND election_type = ${len(params)}"

    if active_only:
        query += " AND is_active = TRUE"

    query += " ORDER BY election_type, name, code"

    results = await conn.fetch(query, *params)
    return [_parse_zone_row(row) for row in results]


async def set_zone_frozen(
    conn: asyncpg.Connection, zone_id: UUID, frozen: bool
) -> dict | None:
    """Open or close voting in a zone."""
    result = await conn.fetchrow(
        """
        UPDATE zones
        SET is_frozen = $1, updated_at = CURRENT_TIMESTAMP
        WHERE id = $2
        RETURNING *
        """,
        frozen,
        str(zone_id),
    )
    if result:
        logger.info(f"Zone {zone_id} {'frozen' if frozen else 'reopened'}")
    return _parse_zone_row(result)


def _parse_zone_row(row: asyncpg.Record | None) -> dict | None:
    """Parse a zone row into a dict."""
    if not row:
        return None

    result = dict(row)
    result["id"] = str(result["id"])
    return result
