"""Error types surfaced by ingestion and query operations.

Each error maps to a response status so callers can tell the kinds apart:
input errors are the caller's fault, everything else is a server-side failure.
Row-level problems in feed data (bad CSV lines, malformed times) are never
raised; they are dropped by the decoder and the departure filter.
"""

from train_times.models.responses import ErrorResponse


class TrainTimesError(Exception):
    """Base class for all train-times errors."""

    kind = "TrainTimesError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> ErrorResponse:
        """Build the structured error payload for this error."""
        return ErrorResponse(
            error=self.kind,
            message=self.message,
            status_code=self.status_code,
        )

    def __str__(self) -> str:
        return f"{self.kind} ({self.status_code}): {self.message}"


class InputError(TrainTimesError):
    """Missing or invalid caller-supplied parameter (unknown agency, blank stop id)."""

    kind = "InputError"
    status_code = 400


class RetrievalError(TrainTimesError):
    """Upstream feed could not be downloaded."""

    kind = "RetrievalError"
    status_code = 502

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status

    def to_response(self) -> ErrorResponse:
        response = super().to_response()
        response.upstream_status = self.upstream_status
        return response


class FormatError(TrainTimesError):
    """Feed archive is unreadable."""

    kind = "FormatError"
    status_code = 500


class MissingMemberError(FormatError):
    """A required table is missing from an otherwise readable feed archive."""

    kind = "MissingMemberError"

    def __init__(self, member: str):
        super().__init__(f"Required table missing from feed: {member}")
        self.member = member


class PersistenceError(TrainTimesError):
    """The SQL executor failed to run a query or batch."""

    kind = "PersistenceError"
    status_code = 500


class ConfigurationError(TrainTimesError):
    """The agencies file is missing or invalid."""

    kind = "ConfigurationError"
    status_code = 500
