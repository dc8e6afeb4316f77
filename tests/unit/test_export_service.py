"""Unit tests for admin data exports."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.services.export import export_candidates, export_dataset, export_turnout
from app.services.zones import ElectionType


class TestExportDataset:
    async def test_unknown_dataset(self):
        with pytest.raises(ValueError):
            await export_dataset(MagicMock(), "votes")

    async def test_candidate_ids_are_strings(self):
        conn = MagicMock()
        candidate_id = uuid4()
        conn.fetch = AsyncMock(
            return_value=[{"id": candidate_id, "name": "Ramesh", "status": "WITHDRAWN"}]
        )

        rows = await export_candidates(conn)

        assert rows == [{"id": str(candidate_id), "name": "Ramesh", "status": "WITHDRAWN"}]

    async def test_turnout_covers_every_election(self):
        with patch(
            "app.services.export.compute_election_turnout",
            AsyncMock(side_effect=lambda conn, et: [{"election_type": et.value}]),
        ) as mock_turnout:
            rows = await export_turnout(MagicMock())

        assert [r["election_type"] for r in rows] == [e.value for e in ElectionType]
        assert mock_turnout.await_count == len(ElectionType)
