"""Seed the zone registry. Safe to run repeatedly."""

import asyncio

import asyncpg

from app.core.config import get_settings
from app.services.zones import ElectionType, list_zones, seed_zones


async def run_seed() -> None:
    settings = get_settings()
    conn = await asyncpg.connect(settings.DATABASE_URL_APP or settings.DATABASE_URL)

    try:
        print("\n" + "=" * 70)
        print(" " * 24 + "ZONE REGISTRY SEED")
        print("=" * 70)

        created = await seed_zones(conn)
        print(f"\n✅ {created} new zone(s) created\n")

        for election_type in ElectionType:
            zones = await list_zones(conn, election_type=election_type)
            seats = sum(zone["seats"] for zone in zones)
            print(f"{election_type.display_name}: {len(zones)} zones, {seats} seats")
            for zone in zones:
                print(f"   • {zone['name']:<24} {zone['seats']} seat(s)")

        print("\n" + "=" * 70 + "\n")
    finally:
        await conn.close()


if __name__ == "__main__":
    asyncio.run(run_seed())
