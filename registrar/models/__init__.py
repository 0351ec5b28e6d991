"""Models package for data structures used in the application."""

from registrar.models.errors import (
    CoercionFailure,
    ConfigurationError,
    DegradationExhausted,
    RegistrarError,
    SchemaLookupFailure,
    SubmissionRejected,
)
from registrar.models.results import BatchResult, FieldOutcome, ReconciliationReport, TicketResult
from registrar.models.schema import AllowedValue, FieldDescriptor, ScreenAvailability
from registrar.models.submission import (
    AccountRef,
    CoercedField,
    DegradationState,
    Rejection,
    RemovedField,
    SubmissionAttempt,
)

__all__ = [
    "AccountRef",
    "AllowedValue",
    "BatchResult",
    "CoercedField",
    "CoercionFailure",
    "ConfigurationError",
    "DegradationExhausted",
    "DegradationState",
    "FieldDescriptor",
    "FieldOutcome",
    "ReconciliationReport",
    "RegistrarError",
    "Rejection",
    "RemovedField",
    "SchemaLookupFailure",
    "ScreenAvailability",
    "SubmissionAttempt",
    "SubmissionRejected",
    "TicketResult",
]
