"""Follow-up update for the fields a ticket was not created with."""

from collections.abc import Collection, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from registrar.clients.jira_client import JiraApiError
from registrar.config import logger
from registrar.fields.coercer import FieldCoercer
from registrar.fields.policy import RegistrationPolicy
from registrar.fields.schema_index import FieldSchemaIndex
from registrar.models.errors import CoercionFailure, SchemaLookupFailure, SubmissionRejected
from registrar.models.results import ReconciliationReport
from registrar.models.submission import CoercedField, Rejection
from registrar.submission.references import ReferenceResolver
from registrar.type_definitions import OutcomeStatus

if TYPE_CHECKING:
    from registrar.clients.jira_client import JiraClient


def _rejection_message(rejection: Rejection, coerced: CoercedField) -> str | None:
    for key, message in rejection.field_errors.items():
        if key.casefold() in {coerced.field_id.casefold(), coerced.name.strip().casefold()}:
            return message
    return None


class UpdateReconciler:
    """Re-coerce fields against the edit screen and submit them in one update.

    Every field ends as ``confirmed``, ``rejected`` or ``skipped``. A rejected
    update never hides the fields that Jira would have accepted: the fields
    it did not complain about are sent once more on their own.
    """

    def __init__(
        self,
        client: "JiraClient",
        catalog: Iterable[Mapping[str, Any]],
        policy: RegistrationPolicy,
        *,
        coercer: FieldCoercer | None = None,
        resolver: ReferenceResolver | None = None,
    ) -> None:
        self.client = client
        self.catalog = list(catalog)
        self.policy = policy
        self.coercer = coercer or FieldCoercer()
        self.resolver = resolver or ReferenceResolver(client)

    def load_edit_index(self, ticket_key: str) -> FieldSchemaIndex:
        """Index the edit screen of a ticket.

        Raises:
            SchemaLookupFailure: If the edit metadata cannot be fetched

        """
        try:
            metadata = self.client.get_edit_metadata(ticket_key)
        except JiraApiError as e:
            msg = f"Edit metadata for {ticket_key} unavailable: {e}"
            raise SchemaLookupFailure(msg) from e
        return FieldSchemaIndex.build(self.catalog, metadata, "edit")

    def reconcile(
        self,
        ticket_key: str,
        raw_values: Mapping[str, str],
        persisted_ids: Collection[str] = (),
    ) -> ReconciliationReport:
        """Update ``ticket_key`` with every field that was not persisted at creation.

        Protected fields are submitted again even when persisted.
        """
        outcomes, pending, names = self._prepare(ticket_key, raw_values, persisted_ids)

        if pending:
            submitted = self._submit(ticket_key, pending)
            self._verify(ticket_key, pending, submitted)
            for field_id, (status, message) in submitted.items():
                outcomes[names[field_id]] = (status, message, field_id)

        report = self._report(ticket_key, raw_values, outcomes)
        logger.info(
            "Reconciled %s: %d confirmed, %d rejected, %d skipped",
            ticket_key,
            len(report.confirmed),
            len(report.rejected),
            len(report.skipped),
        )
        return report

    def analyze(self, ticket_key: str, raw_values: Mapping[str, str]) -> ReconciliationReport:
        """Update ``ticket_key`` with one field per request.

        Shows which mapped fields the ticket refuses and why. Accepted values
        are written to the ticket, so use a ticket meant for testing.
        """
        outcomes, pending, names = self._prepare(ticket_key, raw_values, ())

        submitted: dict[str, tuple[OutcomeStatus, str]] = {}
        for field_id, coerced in pending.items():
            try:
                self._update(ticket_key, {field_id: coerced})
            except SubmissionRejected as e:
                message = _rejection_message(e.rejection, coerced) or e.rejection.summary()
                logger.warning("%s rejected on %s: %s", coerced.name, ticket_key, message)
                submitted[field_id] = ("rejected", message)
            except JiraApiError as e:
                logger.error("Update of %s with %s failed: %s", ticket_key, coerced.name, e)
                submitted[field_id] = ("rejected", str(e))
            else:
                submitted[field_id] = ("confirmed", "")

        self._verify(ticket_key, pending, submitted)
        for field_id, (status, message) in submitted.items():
            outcomes[names[field_id]] = (status, message, field_id)

        report = self._report(ticket_key, raw_values, outcomes)
        logger.info(
            "Analyzed %d field(s) on %s: %d accepted, %d rejected, %d skipped",
            len(report.outcomes),
            ticket_key,
            len(report.confirmed),
            len(report.rejected),
            len(report.skipped),
        )
        return report

    def _prepare(
        self,
        ticket_key: str,
        raw_values: Mapping[str, str],
        persisted_ids: Collection[str],
    ) -> tuple[dict[str, tuple[OutcomeStatus, str, str | None]], dict[str, CoercedField], dict[str, str]]:
        """Coerce and resolve each raw value against the edit screen of ``ticket_key``.

        Returns the outcomes decided without Jira, the fields to submit by id,
        and the mapped name of each submitted field id.
        """
        try:
            index = self.load_edit_index(ticket_key)
        except SchemaLookupFailure as e:
            logger.warning("%s; using the field catalog", e.message)
            index = FieldSchemaIndex.build(self.catalog, {}, "edit")

        outcomes: dict[str, tuple[OutcomeStatus, str, str | None]] = {}
        pending: dict[str, CoercedField] = {}
        names: dict[str, str] = {}

        for name, raw in raw_values.items():
            descriptor = index.lookup(name)
            if descriptor is None:
                outcomes[name] = ("skipped", "field not found in Jira", None)
                continue
            if descriptor.id in persisted_ids and not self.policy.is_protected(name, descriptor.id):
                continue
            if not index.is_available(descriptor.id):
                logger.debug("Field '%s' is not on the edit screen of %s, trying anyway", name, ticket_key)

            try:
                coerced = self.coercer.coerce(descriptor, raw)
            except CoercionFailure as e:
                outcomes[name] = ("skipped", e.message, descriptor.id)
                continue
            if coerced is None:
                continue

            skip_reason = self._resolve(coerced)
            if skip_reason:
                logger.warning("Skipping %s on %s: %s", name, ticket_key, skip_reason)
                outcomes[name] = ("skipped", skip_reason, descriptor.id)
                continue
            if descriptor.id in pending:
                continue
            pending[descriptor.id] = coerced
            names[descriptor.id] = name

        return outcomes, pending, names

    @staticmethod
    def _report(
        ticket_key: str,
        raw_values: Mapping[str, str],
        outcomes: Mapping[str, tuple[OutcomeStatus, str, str | None]],
    ) -> ReconciliationReport:
        report = ReconciliationReport(ticket_key=ticket_key)
        for name in raw_values:
            if name in outcomes:
                status, message, field_id = outcomes[name]
                report.add(name, status, message, field_id=field_id)
        return report

    def _resolve(self, coerced: CoercedField) -> str | None:
        """Resolve references in place. Returns the reason to skip, if any."""
        if coerced.account_refs():
            if not self.resolver.resolve_field(coerced):
                queries = ", ".join(ref.query for ref in coerced.account_refs() if not ref.resolved)
                return f"no Jira user matches {queries}"
            return None

        if coerced.descriptor.schema_type == "team" and not coerced.confirmed:
            team_id = self.resolver.resolve_team(coerced.raw)
            if team_id is None:
                return f"no team matches '{coerced.raw}'"
            coerced.value = team_id
            coerced.confirmed = True
        return None

    def _update(self, ticket_key: str, fields: Mapping[str, CoercedField]) -> None:
        self.client.update_ticket(ticket_key, {fid: coerced.payload() for fid, coerced in fields.items()})

    def _submit(
        self,
        ticket_key: str,
        pending: dict[str, CoercedField],
    ) -> dict[str, tuple[OutcomeStatus, str]]:
        """Send the update; returns status and message per field id."""
        try:
            self._update(ticket_key, pending)
        except SubmissionRejected as e:
            rejection = e.rejection
        except JiraApiError as e:
            logger.error("Update of %s failed: %s", ticket_key, e)
            return dict.fromkeys(pending, ("rejected", str(e)))
        else:
            return dict.fromkeys(pending, ("confirmed", ""))

        logger.warning("Update of %s rejected: %s", ticket_key, rejection.summary())
        suspects = self.policy.suspects_for(rejection.general_messages)
        outcomes: dict[str, tuple[OutcomeStatus, str]] = {}
        remaining: dict[str, CoercedField] = {}
        for field_id, coerced in pending.items():
            message = _rejection_message(rejection, coerced)
            if message is None and {field_id.casefold(), coerced.name.strip().casefold()} & suspects:
                message = "; ".join(rejection.general_messages)
            if message is None:
                remaining[field_id] = coerced
            else:
                outcomes[field_id] = ("rejected", message)

        if not remaining:
            return outcomes
        if len(remaining) == len(pending):
            # Nothing singled out, a second identical request would fail the same way
            outcomes.update(dict.fromkeys(remaining, ("rejected", rejection.summary())))
            return outcomes

        logger.info("Re-submitting %d field(s) of %s without the rejected ones", len(remaining), ticket_key)
        try:
            self._update(ticket_key, remaining)
        except SubmissionRejected as e:
            retry = e.rejection
            for field_id, coerced in remaining.items():
                outcomes[field_id] = ("rejected", _rejection_message(retry, coerced) or retry.summary())
        except JiraApiError as e:
            logger.error("Update of %s failed: %s", ticket_key, e)
            outcomes.update(dict.fromkeys(remaining, ("rejected", str(e))))
        else:
            outcomes.update(dict.fromkeys(remaining, ("confirmed", "")))
        return outcomes

    def _verify(
        self,
        ticket_key: str,
        pending: Mapping[str, CoercedField],
        outcomes: dict[str, tuple[OutcomeStatus, str]],
    ) -> None:
        """Re-read high-risk fields; a value Jira dropped silently counts as rejected."""
        watched = {name.strip().casefold() for name in self.policy.verify_fields}
        to_check = [
            field_id
            for field_id, coerced in pending.items()
            if outcomes.get(field_id, ("",))[0] == "confirmed"
            and {field_id.casefold(), coerced.name.strip().casefold()} & watched
        ]
        if not to_check:
            return

        try:
            current = self.client.get_ticket_fields(ticket_key, to_check)
        except JiraApiError as e:
            logger.warning("Could not verify %s: %s", ticket_key, e)
            return

        for field_id in to_check:
            name = pending[field_id].name
            if current.get(field_id) in (None, "", [], {}):
                logger.warning("Jira accepted %s on %s but did not keep it", name, ticket_key)
                outcomes[field_id] = ("rejected", "value not kept after update")
            else:
                logger.debug("Verified %s on %s", name, ticket_key)
