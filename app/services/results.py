"""Per-election results summaries with a read-through TTL cache."""

import threading
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import asyncpg

from app.core.config import settings
from app.core.logging_config import get_logger
from app.services.turnout import (
    compute_election_turnout,
    count_active_voters,
    round1,
    turnout_percentage,
)
from app.services.zones import ElectionType

logger = get_logger(__name__)


class TTLCache:
    """
    Small in-memory cache whose entries expire ``ttl_seconds`` after being set.

    Per-process only; every instance of the service keeps its own copy.
    """

    def __init__(
        self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Any, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Any) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: Any, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def invalidate(self, key: Any | None = None) -> None:
        """Drop one entry, or every entry when no key is given."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)


def compose_election_summary(
    election_type: ElectionType,
    regions: list[dict],
    total_voters_in_system: int,
    generated_at: datetime | None = None,
) -> dict[str, Any]:
    """Aggregate zone turnout into one election's summary. Regions sort by name, then code."""
    ordered = sorted(regions, key=lambda r: (r["zone_name"], r["zone_code"]))
    total_voters = sum(r["total_voters"] for r in ordered)
    unique_voters_voted = sum(r["unique_voters_voted"] for r in ordered)

    return {
        "election_type": election_type.value,
        "name": election_type.display_name,
        "regions": ordered,
        "total_regions": len(ordered),
        "total_voters": total_voters,
        "total_votes": sum(r["total_votes"] for r in ordered),
        "unique_voters_voted": unique_voters_voted,
        "actual_votes": sum(r["actual_votes"] for r in ordered),
        "nota_votes": sum(r["nota_votes"] for r in ordered),
        "turnout_percentage": turnout_percentage(unique_voters_voted, total_voters),
        "total_voters_in_system": total_voters_in_system,
        "timestamp": (generated_at or datetime.now(UTC)).isoformat(),
    }


class ResultsComposer:
    """Builds election summaries and owns the cache they are served from."""

    def __init__(self, ttl_seconds: float | None = None, cache: TTLCache | None = None) -> None:
        if cache is None:
            ttl = settings.RESULTS_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
            cache = TTLCache(ttl)
        self.cache = cache

    async def compose(
        self, conn: asyncpg.Connection, election_type: ElectionType
    ) -> dict[str, Any]:
        """
        Summary for one election, served from cache while fresh.

        Raises:
            ResultsUnavailable: the store could not be read. Nothing is cached.
        """
        cached = self.cache.get(election_type)
        if cached is not None:
            return cached

        regions = await compute_election_turnout(conn, election_type)
        total_in_system = await count_active_voters(conn)
        summary = compose_election_summary(election_type, regions, total_in_system)

        self.cache.set(election_type, summary)
        logger.debug(f"Results for {election_type.value} recomposed ({len(regions)} zones)")
        return summary

    async def compose_all(self, conn: asyncpg.Connection) -> dict[str, Any]:
        """Summaries of all three elections for the admin dashboard."""
        elections = {}
        for election_type in ElectionType:
            elections[election_type.value] = await self.compose(conn, election_type)

        total_voters = sum(e["total_voters"] for e in elections.values())
        unique_voted = sum(e["unique_voters_voted"] for e in elections.values())
        return {
            "elections": elections,
            "total_voters_in_system": await count_active_voters(conn),
            "overall_turnout_percentage": (
                round1(unique_voted / total_voters * 100) if total_voters else 0.0
            ),
            "timestamp": datetime.now(UTC).isoformat(),
        }

    def invalidate(self, election_type: ElectionType | None = None) -> None:
        self.cache.invalidate(election_type)
