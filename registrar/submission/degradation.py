"""Create a ticket, dropping rejected fields and retrying a bounded number of times."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from registrar.config import logger
from registrar.fields.policy import RegistrationPolicy
from registrar.models.errors import DegradationExhausted, SubmissionRejected
from registrar.models.submission import (
    CoercedField,
    DegradationState,
    Rejection,
    RemovedField,
    SubmissionAttempt,
)

if TYPE_CHECKING:
    from registrar.clients.jira_client import JiraClient


@dataclass(frozen=True, slots=True)
class CreationOutcome:
    """A created ticket and the fields it was created with."""

    ticket_key: str
    persisted: dict[str, CoercedField]
    removed: list[RemovedField]
    attempts: list[SubmissionAttempt]


class CreationDegradationLoop:
    """Submit a creation request, reducing the field set after each rejection.

    The mandatory fields are sent on every attempt and never removed. After
    ``policy.max_reduction_rounds`` reductions the last rejection is raised
    as ``DegradationExhausted``.
    """

    def __init__(self, client: "JiraClient", policy: RegistrationPolicy) -> None:
        self.client = client
        self.policy = policy

    @property
    def max_attempts(self) -> int:
        return self.policy.max_reduction_rounds + 1

    def run(
        self,
        title: str,
        mandatory: Mapping[str, Any],
        candidates: Mapping[str, CoercedField],
    ) -> CreationOutcome:
        """Create the ticket.

        Raises:
            DegradationExhausted: If every allowed attempt was rejected

        """
        state = DegradationState(candidates=dict(candidates))
        self.remove_unsubmittable(state)

        while True:
            number = state.attempt_count + 1
            payload = {**mandatory, **{fid: coerced.payload() for fid, coerced in state.candidates.items()}}
            logger.info(
                "Creating '%s' (attempt %d/%d) with %d optional field(s)",
                title,
                number,
                self.max_attempts,
                len(state.candidates),
            )

            try:
                ticket_key = self.client.create_ticket(payload)
            except SubmissionRejected as e:
                state.attempts.append(SubmissionAttempt(number, payload, rejection=e.rejection))
                logger.warning("Attempt %d for '%s' rejected: %s", number, title, e.rejection.summary())
                if state.attempt_count >= self.max_attempts:
                    raise DegradationExhausted(title, state.attempts) from e

                if not self.reduce(state, e.rejection):
                    logger.warning("No removable field identified for '%s', retrying as is", title)
                continue

            state.attempts.append(SubmissionAttempt(number, payload, ticket_key=ticket_key))
            logger.success("Created %s for '%s' on attempt %d", ticket_key, title, number)
            return CreationOutcome(
                ticket_key=ticket_key,
                persisted=dict(state.candidates),
                removed=list(state.removed),
                attempts=list(state.attempts),
            )

    def remove_unsubmittable(self, state: DegradationState) -> list[RemovedField]:
        """Drop fields that cannot succeed before anything is sent."""
        removed: list[RemovedField] = []
        for field_id, coerced in list(state.candidates.items()):
            refs = coerced.account_refs()
            if refs and not all(ref.resolved for ref in refs):
                reason = "user reference could not be resolved"
            elif (
                self.policy.fragility(coerced.name, field_id) == "unconfirmed"
                and not coerced.is_structurally_valid()
            ):
                reason = f"value '{coerced.raw}' could not be confirmed"
            else:
                continue
            removed.append(self._remove(state, field_id, reason))
        return removed

    def reduce(self, state: DegradationState, rejection: Rejection) -> list[RemovedField]:
        """Remove the fields a rejection points at. Returns what was removed."""
        named = {name.casefold(): message for name, message in rejection.field_errors.items()}
        suspects = self.policy.suspects_for(rejection.general_messages)

        for name in named:
            if name in {"project", "summary", "description", "issuetype"}:
                logger.error("Jira rejected mandatory field %s: %s", name, named[name])

        removed: list[RemovedField] = []
        for field_id, coerced in list(state.candidates.items()):
            keys = {field_id.casefold(), coerced.name.strip().casefold()}
            message = next((named[key] for key in keys if key in named), None)

            if message is not None:
                reason = f"rejected: {message}"
            elif self.policy.is_protected(coerced.name, field_id):
                if coerced.is_structurally_valid():
                    continue
                reason = "invalid value on a rejected request"
            elif keys & suspects:
                reason = "suspected from error message"
            elif self.policy.fragility(coerced.name, field_id) == "first_rejection":
                reason = "fragile field dropped after a rejection"
            else:
                continue
            removed.append(self._remove(state, field_id, reason))
        return removed

    def _remove(self, state: DegradationState, field_id: str, reason: str) -> RemovedField:
        removed = state.remove(field_id, reason)
        logger.notice("Dropping field %s (%s): %s", removed.field_name, field_id, reason)
        return removed
