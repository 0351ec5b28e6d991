"""Result models for tracking registration outcomes."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from registrar.type_definitions import OutcomeStatus, TicketStatus


class FieldOutcome(BaseModel):
    """Final state of one field after reconciliation."""

    field_id: str | None = None
    field_name: str
    status: OutcomeStatus
    message: str = ""


class ReconciliationReport(BaseModel):
    """Per-field outcomes of the follow-up update of one ticket."""

    ticket_key: str
    outcomes: list[FieldOutcome] = Field(default_factory=list)

    def add(self, field_name: str, status: OutcomeStatus, message: str = "", field_id: str | None = None) -> None:
        """Record the outcome of one field."""
        self.outcomes.append(
            FieldOutcome(field_id=field_id, field_name=field_name, status=status, message=message),
        )

    def by_status(self, status: OutcomeStatus) -> list[FieldOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status == status]

    @property
    def confirmed(self) -> list[FieldOutcome]:
        return self.by_status("confirmed")

    @property
    def rejected(self) -> list[FieldOutcome]:
        return self.by_status("rejected")

    @property
    def skipped(self) -> list[FieldOutcome]:
        return self.by_status("skipped")


class DroppedField(BaseModel):
    """A field removed from the creation payload."""

    field_id: str
    field_name: str
    reason: str


class TicketResult(BaseModel):
    """Represents the outcome of registering one source record."""

    title: str
    status: TicketStatus
    ticket_key: str | None = None
    attempts: int = 0
    persisted_fields: list[str] = Field(default_factory=list)
    removed_fields: list[DroppedField] = Field(default_factory=list)
    reconciliation: ReconciliationReport | None = None
    error: str | None = None
    payload: dict[str, Any] | None = None


class BatchResult(BaseModel):
    """Represents the overall result of one registration run."""

    tickets: list[TicketResult] = Field(default_factory=list)
    started_at: str = Field(default_factory=lambda: datetime.now().isoformat())

    def _count(self, status: TicketStatus) -> int:
        return sum(1 for ticket in self.tickets if ticket.status == status)

    @property
    def created(self) -> int:
        return self._count("created")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    @property
    def failed(self) -> int:
        return self._count("failed")

    @property
    def planned(self) -> int:
        return self._count("planned")
