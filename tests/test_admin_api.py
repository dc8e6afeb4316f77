"""
API tests for admin operations: voter roll, zone freezing, nomination review.
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from app.core.exceptions import NominationReviewError
from app.main import app
from app.services.candidates import CandidateStatus
from app.services.zones import ElectionType


class TestVoterRoll:
    """Test /admin/voters."""

    @pytest.mark.asyncio
    async def test_register_voter(self, async_client, as_admin):
        voter = {"id": str(uuid4()), "voter_id": "V100", "name": "Asha Patel"}
        with (
            patch(
                "app.services.voters.register_voter", AsyncMock(return_value=voter)
            ) as mock_register,
            patch("app.api.routes.admin.create_audit_log", AsyncMock()) as mock_audit,
        ):
            response = await async_client.post(
                "/admin/voters",
                json={
                    "voter_id": "V100",
                    "name": "Asha Patel",
                    "region": "Raigad",
                    "phone": "9876543210",
                    "dob": "12/03/1998",
                },
            )

        assert response.status_code == 201
        assert response.json()["data"] == voter
        assert mock_register.call_args[1]["dob"] == "12/03/1998"
        assert mock_audit.call_args[1]["action_type"] == "voter_registered"

    @pytest.mark.asyncio
    async def test_duplicate_voter(self, async_client, as_admin):
        with patch("app.services.voters.register_voter", AsyncMock(return_value=None)):
            response = await async_client.post(
                "/admin/voters",
                json={"voter_id": "V100", "name": "A", "region": "Mumbai", "email": "a@b.co"},
            )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_voter_needs_contact(self, async_client, as_admin):
        response = await async_client.post(
            "/admin/voters", json={"voter_id": "V100", "name": "A", "region": "Mumbai"}
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_bad_dob_format(self, async_client, as_admin):
        response = await async_client.post(
            "/admin/voters",
            json={
                "voter_id": "V100",
                "name": "A",
                "region": "Mumbai",
                "phone": "9876543210",
                "dob": "1998-03-12",
            },
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_voters(self, async_client, as_admin):
        with patch(
            "app.services.voters.list_voters", AsyncMock(return_value=([], 0))
        ) as mock_list:
            response = await async_client.get("/admin/voters?region=Bhuj&limit=10")

        assert response.status_code == 200
        assert response.json()["data"] == {"voters": [], "total": 0}
        assert mock_list.call_args[1]["region"] == "Bhuj"
        assert mock_list.call_args[1]["limit"] == 10

    @pytest.mark.asyncio
    async def test_unknown_voter(self, async_client, as_admin):
        with patch("app.services.voters.get_voter", AsyncMock(return_value=None)):
            response = await async_client.get(f"/admin/voters/{uuid4()}")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_requires_admin(self, async_client, as_voter):
        response = await async_client.get("/admin/voters")

        assert response.status_code in (401, 403)


class TestZoneFreeze:
    @pytest.mark.asyncio
    async def test_freeze_clears_results_cache(self, async_client, as_admin):
        zone_id = uuid4()
        zone = {"id": str(zone_id), "election_type": "trustee", "is_frozen": True}
        with (
            patch("app.api.routes.admin.set_zone_frozen", AsyncMock(return_value=zone)),
            patch("app.api.routes.admin.create_audit_log", AsyncMock()) as mock_audit,
            patch.object(app.state.results_composer, "invalidate") as mock_invalidate,
        ):
            response = await async_client.put(
                f"/admin/zones/{zone_id}/freeze", json={"frozen": True}
            )

        assert response.status_code == 200
        assert response.json()["data"]["is_frozen"] is True
        assert mock_audit.call_args[1]["action_type"] == "zone_frozen"
        mock_invalidate.assert_called_once_with(ElectionType.TRUSTEE)

    @pytest.mark.asyncio
    async def test_freeze_unknown_zone(self, async_client, as_admin):
        with patch("app.api.routes.admin.set_zone_frozen", AsyncMock(return_value=None)):
            response = await async_client.put(
                f"/admin/zones/{uuid4()}/freeze", json={"frozen": True}
            )

        assert response.status_code == 404
        assert response.json()["errors"]["code"] == "ZONE_NOT_FOUND"


class TestNominationReview:
    @pytest.mark.asyncio
    async def test_approve(self, async_client, as_admin):
        nomination = {"id": str(uuid4()), "status": "APPROVED"}
        with patch(
            "app.services.nominations.review_nomination", AsyncMock(return_value=nomination)
        ) as mock_review:
            response = await async_client.put(
                f"/admin/nominations/{nomination['id']}/review",
                json={"decision": "APPROVED"},
            )

        assert response.status_code == 200
        assert response.json()["message"] == "Nomination approved"
        assert mock_review.call_args[1]["decision"] == CandidateStatus.APPROVED
        assert str(mock_review.call_args[1]["reviewer_id"]) == as_admin["id"]

    @pytest.mark.asyncio
    async def test_review_refused(self, async_client, as_admin):
        error = NominationReviewError("A rejection reason is required", status="SUBMITTED")
        with patch(
            "app.services.nominations.review_nomination", AsyncMock(side_effect=error)
        ):
            response = await async_client.put(
                f"/admin/nominations/{uuid4()}/review", json={"decision": "REJECTED"}
            )

        assert response.status_code == 400
        assert response.json()["errors"]["code"] == "NOMINATION_REVIEW_ERROR"

    @pytest.mark.asyncio
    async def test_list_filters(self, async_client, as_admin):
        with patch(
            "app.services.nominations.list_nominations", AsyncMock(return_value=([], 0))
        ) as mock_list:
            response = await async_client.get(
                "/admin/nominations?status=SUBMITTED&election_type=karobari"
            )

        assert response.status_code == 200
        assert mock_list.call_args[1]["status"] == CandidateStatus.SUBMITTED
        assert mock_list.call_args[1]["election_type"] == ElectionType.KAROBARI

    @pytest.mark.asyncio
    async def test_document_url_not_found(self, async_client, as_admin):
        with patch(
            "app.services.nominations.get_document_view_url", AsyncMock(return_value=None)
        ):
            response = await async_client.get(
                f"/admin/nominations/{uuid4()}/documents/{uuid4()}/url"
            )

        assert response.status_code == 404


class TestVoterRollUpload:
    """Test /admin/voters/upload."""

    @pytest.mark.asyncio
    async def test_json_upload(self, async_client, as_admin):
        report = {
            "created": [{"row": 1, "voter_id": "V1", "id": str(uuid4())}],
            "skipped": [{"row": 2, "voter_id": "V2", "reason": "Voter id is already registered"}],
            "errors": [],
        }
        rows = [
            {"voter_id": "V1", "name": "Asha", "region": "Raigad", "phone": "9876543210"},
            {"voter_id": "V2", "name": "Ravi", "region": "Bhuj", "email": "ravi@example.com"},
        ]
        with (
            patch(
                "app.services.voters.register_voters_bulk", AsyncMock(return_value=report)
            ) as mock_bulk,
            patch("app.api.routes.admin.create_audit_log", AsyncMock()) as mock_audit,
        ):
            response = await async_client.post("/admin/voters/upload", json={"voters": rows})

        assert response.status_code == 200
        assert response.json()["data"] == report
        assert response.json()["message"] == "1 of 2 voters registered"
        assert mock_bulk.call_args[0][1] == rows
        audit = mock_audit.call_args[1]
        assert audit["action_type"] == "voter_roll_uploaded"
        assert audit["details"] == {"rows": 2, "created": 1, "skipped": 1, "errors": 0}

    @pytest.mark.asyncio
    async def test_csv_upload(self, async_client, as_admin):
        csv_text = (
            "Voter ID,Name,Region,Mobile No,Date of Birth\n"
            "V1,Asha Patel,Raigad,98765 43210,12/03/1998\n"
            ",,,,\n"
            "V2,Ravi Shah,Bhuj,,\n"
        )
        report = {"created": [], "skipped": [], "errors": []}
        with (
            patch(
                "app.services.voters.register_voters_bulk", AsyncMock(return_value=report)
            ) as mock_bulk,
            patch("app.api.routes.admin.create_audit_log", AsyncMock()),
        ):
            response = await async_client.post(
                "/admin/voters/upload",
                content=csv_text.encode(),
                headers={"Content-Type": "text/csv"},
            )

        assert response.status_code == 200
        rows = mock_bulk.call_args[0][1]
        assert rows == [
            {
                "voter_id": "V1",
                "name": "Asha Patel",
                "region": "Raigad",
                "phone": "98765 43210",
                "dob": "12/03/1998",
            },
            {"voter_id": "V2", "name": "Ravi Shah", "region": "Bhuj", "phone": None, "dob": None},
        ]

    @pytest.mark.asyncio
    async def test_empty_upload(self, async_client, as_admin):
        response = await async_client.post("/admin/voters/upload", json={"voters": []})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_malformed_json(self, async_client, as_admin):
        response = await async_client.post("/admin/voters/upload", json={"rows": "nope"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_too_many_rows(self, async_client, as_admin):
        rows = [{"voter_id": f"V{n}", "name": "A", "region": "Mumbai"} for n in range(3)]
        with patch("app.api.routes.admin.settings") as mock_settings:
            mock_settings.VOTER_UPLOAD_MAX_ROWS = 2
            response = await async_client.post("/admin/voters/upload", json={"voters": rows})

        assert response.status_code == 413

    @pytest.mark.asyncio
    async def test_requires_admin(self, async_client):
        response = await async_client.post("/admin/voters/upload", json={"voters": [{}]})

        assert response.status_code == 401


class TestDataExport:
    """Test /admin/export."""

    @pytest.mark.asyncio
    async def test_json_export(self, async_client, as_admin):
        rows = [{"voter_id": "V1", "name": "Asha", "region": "Raigad"}]
        with (
            patch(
                "app.services.export.export_dataset", AsyncMock(return_value=rows)
            ) as mock_export,
            patch("app.api.routes.admin.create_audit_log", AsyncMock()) as mock_audit,
        ):
            response = await async_client.get("/admin/export?dataset=voters")

        assert response.status_code == 200
        assert response.json()["data"] == {"voters": rows, "count": 1}
        assert mock_export.call_args[0][1] == "voters"
        assert mock_audit.call_args[1]["details"] == {
            "dataset": "voters",
            "format": "json",
            "rows": 1,
        }

    @pytest.mark.asyncio
    async def test_csv_export(self, async_client, as_admin):
        rows = [
            {"status": "APPROVED", "name": "Ramesh", "id": "c1", "vote_count": 12},
            {"status": "WITHDRAWN", "name": "Meena", "id": "c2", "vote_count": 0},
        ]
        with (
            patch("app.services.export.export_dataset", AsyncMock(return_value=rows)),
            patch("app.api.routes.admin.create_audit_log", AsyncMock()),
        ):
            response = await async_client.get("/admin/export?dataset=candidates&format=csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment; filename=candidates_" in response.headers["content-disposition"]
        lines = response.text.strip().splitlines()
        assert lines[0] == "id,name,status,vote_count"
        assert lines[2] == "c2,Meena,WITHDRAWN,0"

    @pytest.mark.asyncio
    async def test_unknown_dataset(self, async_client, as_admin):
        response = await async_client.get("/admin/export?dataset=votes")

        assert response.status_code == 422
