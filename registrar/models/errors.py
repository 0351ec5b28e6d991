"""Defines exceptions for the registration process."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from registrar.models.submission import Rejection, SubmissionAttempt


class RegistrarError(Exception):
    """Base exception for registration errors."""

    def __init__(self, message: str, *args: object) -> None:
        """Initialize the exception with a descriptive message.

        Args:
            message: Detailed error message
            *args: Additional positional arguments for Exception

        """
        super().__init__(message, *args)
        self.message = message


class ConfigurationError(RegistrarError):
    """Missing or malformed source or connection setup. Aborts before any submission."""


class SchemaLookupFailure(RegistrarError):
    """Field catalog or screen metadata could not be fetched."""


class CoercionFailure(RegistrarError):
    """A raw value cannot be shaped for its field type."""

    def __init__(self, message: str, field_name: str) -> None:  # noqa: D107
        super().__init__(message)
        self.field_name = field_name


class SubmissionRejected(RegistrarError):
    """Jira rejected a create or update request."""

    def __init__(self, rejection: Rejection) -> None:  # noqa: D107
        super().__init__(f"Jira rejected the submission: {rejection.summary()}")
        self.rejection = rejection


class DegradationExhausted(RegistrarError):
    """Every allowed creation attempt was rejected. Fatal for one record only."""

    def __init__(self, title: str, attempts: list[SubmissionAttempt]) -> None:  # noqa: D107
        last = attempts[-1].rejection if attempts else None
        detail = last.summary() if last else "no attempt recorded"
        super().__init__(f"Could not create '{title}' after {len(attempts)} attempt(s): {detail}")
        self.title = title
        self.attempts = attempts
        self.rejection = last
