"""Domain exceptions with stable error codes."""

from typing import Any

from fastapi import status


class ElectionError(Exception):
    """Base class for election domain failures."""

    code = "ELECTION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_errors(self) -> dict[str, Any]:
        return {"code": self.code, **self.details}


class BallotError(ElectionError):
    """A ballot submission was refused. Nothing was persisted."""

    code = "BALLOT_ERROR"


class VoterNotFound(BallotError):
    code = "VOTER_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class ZoneNotFound(BallotError):
    code = "ZONE_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class NotEligible(BallotError):
    code = "NOT_ELIGIBLE"
    status_code = status.HTTP_403_FORBIDDEN


class AlreadyVoted(BallotError):
    code = "ALREADY_VOTED"
    status_code = status.HTTP_409_CONFLICT


class ZoneFrozen(BallotError):
    code = "ZONE_FROZEN"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidCandidate(BallotError):
    code = "INVALID_CANDIDATE"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class SeatOverflow(BallotError):
    code = "SEAT_OVERFLOW"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class DuplicateSelection(BallotError):
    code = "DUPLICATE_SELECTION"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotaConfirmationRequired(BallotError):
    """Fewer selections than seats and the caller has not confirmed NOTA fill."""

    code = "NOTA_CONFIRMATION_REQUIRED"
    status_code = status.HTTP_409_CONFLICT


class NominationReviewError(ElectionError):
    code = "NOMINATION_REVIEW_ERROR"


class NominationNotFound(ElectionError):
    code = "NOMINATION_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class ResultsUnavailable(ElectionError):
    """Turnout or results could not be computed from the store."""

    code = "RESULTS_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
