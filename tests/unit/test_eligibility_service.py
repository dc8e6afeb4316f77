"""Unit tests for eligibility resolution."""

from datetime import date
from unittest.mock import patch
from uuid import uuid4

import pytest

from app.services.eligibility import (
    REASON_AGE,
    REASON_INACTIVE,
    REASON_NOT_ASSIGNED,
    REASON_REGION,
    REASON_UNKNOWN,
    REASON_ZONE_MISSING,
    is_yuva_pankh_region,
    resolve_eligibility,
    voter_age,
)
from app.services.zones import ElectionType

CUTOFF = date(2025, 8, 31)


def make_zone(election_type: ElectionType, seats: int = 2) -> dict:
    return {
        "id": str(uuid4()),
        "code": "RAIGAD",
        "name": "Raigad",
        "seats": seats,
        "election_type": election_type.value,
        "is_frozen": False,
    }


def make_voter(**overrides) -> dict:
    voter = {
        "id": str(uuid4()),
        "region": "Raigad",
        "dob": "10/01/1995",
        "age": None,
        "is_active": True,
        "yuva_pankh_zone_id": None,
        "karobari_zone_id": None,
        "trustee_zone_id": None,
    }
    voter.update(overrides)
    return voter


class TestVoterAge:
    """Test age computation against the cutoff."""

    def test_age_from_dob(self):
        assert voter_age({"dob": "31/08/2007"}, CUTOFF) == 18
        assert voter_age({"dob": "01/09/2007"}, CUTOFF) == 17

    def test_falls_back_to_stored_age(self):
        assert voter_age({"dob": None, "age": 30}, CUTOFF) == 30

    def test_unparseable_dob_falls_back(self):
        assert voter_age({"id": "x", "dob": "1995-01-10", "age": 29}, CUTOFF) == 29

    def test_no_dob_or_age(self):
        assert voter_age({}, CUTOFF) is None


class TestYuvaPankhRegion:
    @pytest.mark.parametrize(
        "region", ["Raigad", "Karnataka & Goa", "karnataka-goa", " RAIGAD "]
    )
    def test_allowed_regions(self, region):
        assert is_yuva_pankh_region(region) is True

    @pytest.mark.parametrize("region", ["Mumbai", "Bhuj", "", None])
    def test_other_regions(self, region):
        assert is_yuva_pankh_region(region) is False


class TestResolveEligibility:
    """Test resolve_eligibility for each election."""

    def test_eligible_with_zone(self):
        zone = make_zone(ElectionType.KAROBARI, seats=4)
        voter = make_voter(karobari_zone_id=zone["id"])

        result = resolve_eligibility(voter, ElectionType.KAROBARI, zone, CUTOFF)

        assert result["eligible"] is True
        assert result["zone"] == zone
        assert result["seat_count"] == 4
        assert result["reason"] is None

    def test_unassigned_yuva_pankh_too_old(self):
        voter = make_voter(dob="15/06/1983")

        result = resolve_eligibility(voter, ElectionType.YUVA_PANKH, None, CUTOFF)

        assert result["eligible"] is False
        assert result["reason"] == REASON_AGE

    def test_unassigned_yuva_pankh_missing_age(self):
        voter = make_voter(dob=None, age=None)

        result = resolve_eligibility(voter, ElectionType.YUVA_PANKH, None, CUTOFF)

        assert result["reason"] == REASON_AGE

    def test_unassigned_yuva_pankh_wrong_region(self):
        voter = make_voter(region="Mumbai", dob="10/01/2000")

        result = resolve_eligibility(voter, ElectionType.YUVA_PANKH, None, CUTOFF)

        assert result["reason"] == REASON_REGION

    def test_unassigned_yuva_pankh_passing_all_rules_is_logged(self):
        voter = make_voter(region="Raigad", dob="10/01/2000")

        with patch("app.services.eligibility.integrity_logger") as mock_logger:
            result = resolve_eligibility(voter, ElectionType.YUVA_PANKH, None, CUTOFF)

        assert result["eligible"] is False
        assert result["reason"] == REASON_UNKNOWN
        mock_logger.log_unknown_ineligibility.assert_called_once_with(
            voter["id"], "yuva_pankh", "Raigad"
        )

    def test_unassigned_karobari(self):
        result = resolve_eligibility(make_voter(), ElectionType.KAROBARI, None, CUTOFF)

        assert result["reason"] == REASON_NOT_ASSIGNED

    def test_inactive_voter(self):
        zone = make_zone(ElectionType.KAROBARI)
        voter = make_voter(karobari_zone_id=zone["id"], is_active=False)

        result = resolve_eligibility(voter, ElectionType.KAROBARI, zone, CUTOFF)

        assert result["eligible"] is False
        assert result["reason"] == REASON_INACTIVE

    def test_assigned_zone_missing(self):
        voter = make_voter(karobari_zone_id=str(uuid4()))

        result = resolve_eligibility(voter, ElectionType.KAROBARI, None, CUTOFF)

        assert result["reason"] == REASON_ZONE_MISSING

    def test_zone_of_another_election(self):
        zone = make_zone(ElectionType.TRUSTEE)
        voter = make_voter(karobari_zone_id=zone["id"])

        result = resolve_eligibility(voter, ElectionType.KAROBARI, zone, CUTOFF)

        assert result["reason"] == REASON_ZONE_MISSING

    def test_trustee_minimum_age(self):
        zone = make_zone(ElectionType.TRUSTEE)
        minor = make_voter(trustee_zone_id=zone["id"], dob="01/01/2010")
        adult = make_voter(trustee_zone_id=zone["id"], dob="01/01/1970")

        assert resolve_eligibility(minor, ElectionType.TRUSTEE, zone, CUTOFF)["reason"] == REASON_AGE
        assert resolve_eligibility(adult, ElectionType.TRUSTEE, zone, CUTOFF)["eligible"] is True

    def test_assigned_yuva_pankh_is_eligible(self):
        zone = make_zone(ElectionType.YUVA_PANKH, seats=3)
        voter = make_voter(yuva_pankh_zone_id=zone["id"])

        result = resolve_eligibility(voter, ElectionType.YUVA_PANKH, zone, CUTOFF)

        assert result["eligible"] is True
        assert result["seat_count"] == 3
