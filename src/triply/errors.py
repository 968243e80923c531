"""Exception types raised by the generation pipelines."""

from __future__ import annotations


class TriplyError(Exception):
    """Base class for every error raised by this package."""


class TripValidationError(TriplyError, ValueError):
    """The trip request is missing required fields or names unknown options."""

    def __init__(self, message: str, *, missing: list[str] | None = None) -> None:
        self.missing = list(missing or [])
        super().__init__(message)


class NetworkError(TriplyError):
    """Transport failure or non-success response from a remote service."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.status_code is not None:
            return f"{message} | status={self.status_code}"
        return message


class SchemaError(TriplyError, ValueError):
    """Response arrived but its content does not have the required shape."""


class ExhaustedRetriesError(TriplyError):
    """Every attempt allowed by the retry policy failed.

    Attributes:
        stage: Pipeline stage that gave up ("playlist" or "image").
        attempts: Number of attempts made.
        last_error: Error raised by the final attempt.
    """

    MESSAGES = {
        "playlist": "playlist generation failed",
        "image": "cover image generation failed",
    }

    def __init__(self, stage: str, attempts: int, last_error: BaseException) -> None:
        self.stage = stage
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(self.MESSAGES.get(stage, f"{stage} failed"))
