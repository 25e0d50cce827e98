"""Typed errors shared by the store client, repositories and the API."""

from __future__ import annotations


class ConsumptionRecordsError(Exception):
    """Base class for every error surfaced to the user."""


class ConfigurationError(ConsumptionRecordsError):
    """Supabase connection settings are missing or still placeholders."""


class NetworkError(ConsumptionRecordsError):
    """The store could not be reached at all."""


class RequestError(ConsumptionRecordsError):
    """The store was reached but rejected the request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(ConsumptionRecordsError):
    """Local input validation failed before any request was issued."""


class SubmissionInProgressError(ConsumptionRecordsError):
    """An insert is already running for this repository."""
