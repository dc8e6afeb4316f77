"""Unit tests for domain error codes."""

from app.core.exceptions import (
    AlreadyVoted,
    BallotError,
    DuplicateSelection,
    ElectionError,
    InvalidCandidate,
    NotaConfirmationRequired,
    NotEligible,
    ResultsUnavailable,
    SeatOverflow,
    VoterNotFound,
    ZoneFrozen,
    ZoneNotFound,
)


def test_ballot_errors_share_a_base():
    for error_class in (
        VoterNotFound,
        ZoneNotFound,
        NotEligible,
        AlreadyVoted,
        ZoneFrozen,
        InvalidCandidate,
        SeatOverflow,
        DuplicateSelection,
        NotaConfirmationRequired,
    ):
        assert issubclass(error_class, BallotError)
        assert issubclass(error_class, ElectionError)


def test_codes_are_distinct():
    codes = [
        cls.code
        for cls in (
            VoterNotFound,
            ZoneNotFound,
            NotEligible,
            AlreadyVoted,
            ZoneFrozen,
            InvalidCandidate,
            SeatOverflow,
            DuplicateSelection,
            NotaConfirmationRequired,
            ResultsUnavailable,
        )
    ]
    assert len(codes) == len(set(codes))


def test_to_errors_includes_details():
    error = NotEligible("Not eligible", election_type="yuva_pankh", reason="age")

    assert error.to_errors() == {
        "code": "NOT_ELIGIBLE",
        "election_type": "yuva_pankh",
        "reason": "age",
    }
    assert error.message == "Not eligible"
    assert str(error) == "Not eligible"


def test_status_codes():
    assert AlreadyVoted("x").status_code == 409
    assert ZoneFrozen("x").status_code == 403
    assert SeatOverflow("x").status_code == 422
    assert ResultsUnavailable("x").status_code == 503
