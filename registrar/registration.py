"""Register source records as Jira tickets, one at a time."""

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from registrar import config
from registrar.clients.jira_client import (
    JiraApiError,
    JiraAuthenticationError,
    JiraCaptchaError,
    JiraConnectionError,
)
from registrar.config import logger
from registrar.display import render_reconciliation
from registrar.fields.coercer import FieldCoercer
from registrar.fields.policy import RegistrationPolicy
from registrar.fields.schema_index import FieldSchemaIndex, screen_availability
from registrar.models.errors import DegradationExhausted, SchemaLookupFailure
from registrar.models.results import BatchResult, DroppedField, ReconciliationReport, TicketResult
from registrar.models.schema import ScreenAvailability
from registrar.models.submission import DegradationState, RemovedField
from registrar.records import deduplicate_records
from registrar.submission.degradation import CreationDegradationLoop
from registrar.submission.planner import SubmissionPlanner
from registrar.submission.reconciler import UpdateReconciler
from registrar.submission.references import ReferenceResolver
from registrar.type_definitions import SourceRecord

if TYPE_CHECKING:
    from registrar.clients.jira_client import JiraClient

# Errors that make every following record fail the same way
FATAL_ERRORS = (JiraConnectionError, JiraAuthenticationError, JiraCaptchaError)


def _dropped(removed: Iterable[RemovedField]) -> list[DroppedField]:
    return [
        DroppedField(field_id=item.field_id, field_name=item.field_name, reason=item.reason)
        for item in removed
    ]


class TicketRegistrar:
    """Create tickets from records: plan, create with degradation, reconcile.

    The schema is loaded on first use, or explicitly with ``load_schema``. The field
    catalog is required; missing create-screen metadata only means every
    field waits for the follow-up update.
    """

    def __init__(
        self,
        client: "JiraClient",
        settings: dict[str, Any] | None = None,
        *,
        issue_type: str | None = None,
        dry_run: bool | None = None,
    ) -> None:
        self.client = client
        self.settings = settings if settings is not None else config.registrar_config
        self.issue_type = issue_type or config.jira_config.get("issue_type", "Incidencia")
        self.dry_run = bool(self.settings.get("dry_run", False)) if dry_run is None else dry_run
        self.policy = RegistrationPolicy.from_config(self.settings)

        self.coercer = FieldCoercer()
        self.resolver = ReferenceResolver(client, self.coercer.matcher)
        self.loop = CreationDegradationLoop(client, self.policy)

        self.catalog: list[dict[str, Any]] = []
        self.creation_metadata: dict[str, Any] = {}
        self.planner: SubmissionPlanner | None = None
        self.reconciler: UpdateReconciler | None = None

    def load_schema(self) -> tuple[SubmissionPlanner, UpdateReconciler]:
        """Fetch the field catalog and the create screen of the issue type.

        Returns:
            The planner and reconciler built from the fetched schema

        Raises:
            SchemaLookupFailure: If the field catalog cannot be fetched

        """
        try:
            self.catalog = self.client.list_fields()
        except JiraApiError as e:
            msg = f"Could not load the Jira field catalog: {e}"
            raise SchemaLookupFailure(msg) from e

        try:
            creation_metadata = self.client.get_creation_metadata(self.issue_type)
        except JiraApiError as e:
            failure = SchemaLookupFailure(f"Create screen of '{self.issue_type}' unavailable: {e}")
            logger.warning("%s; all fields wait for the follow-up update", failure.message)
            creation_metadata = {}
        self.creation_metadata = creation_metadata

        index = FieldSchemaIndex.build(self.catalog, creation_metadata, "create")
        logger.info(
            "Loaded %d field(s), %d on the create screen of '%s'",
            len(self.catalog),
            len(index.available_ids),
            self.issue_type,
        )

        self.planner = SubmissionPlanner(
            index,
            self.settings,
            project_key=self.client.project_key,
            issue_type=self.issue_type,
            coercer=self.coercer,
            resolver=self.resolver,
        )
        self.reconciler = UpdateReconciler(
            self.client,
            self.catalog,
            self.policy,
            coercer=self.coercer,
            resolver=self.resolver,
        )
        return self.planner, self.reconciler

    def ensure_schema(self) -> tuple[SubmissionPlanner, UpdateReconciler]:
        if self.planner is not None and self.reconciler is not None:
            return self.planner, self.reconciler
        return self.load_schema()

    def _find_existing(self, title: str) -> str | None:
        try:
            return self.client.find_existing_ticket_by_exact_title(title)
        except JiraApiError as e:
            logger.warning("Could not search for an existing ticket '%s': %s", title, e)
            return None

    def register_record(self, record: SourceRecord) -> TicketResult:
        """Register one record. Only transport failures propagate."""
        planner, reconciler = self.ensure_schema()

        title = planner.title_of(record)
        if not title:
            logger.warning("Skipping record without a value in '%s'", planner.title_column)
            return TicketResult(title="", status="skipped", error="record has no title")

        existing = self._find_existing(title)
        if existing:
            logger.notice("'%s' already exists as %s, skipping", title, existing)
            return TicketResult(
                title=title,
                status="skipped",
                ticket_key=existing,
                error=f"already registered as {existing}",
            )

        plan = planner.plan(record)

        if self.dry_run:
            state = DegradationState(candidates=dict(plan.creation_fields))
            self.loop.remove_unsubmittable(state)
            logger.info("[DRY RUN] Would create '%s' with %d field(s)", title, len(state.candidates))
            return TicketResult(
                title=title,
                status="planned",
                persisted_fields=[coerced.name for coerced in state.candidates.values()],
                removed_fields=_dropped(state.removed),
                payload=plan.payload(state.candidates),
            )

        try:
            outcome = self.loop.run(title, plan.mandatory, plan.creation_fields)
        except DegradationExhausted as e:
            logger.error(e.message)
            return TicketResult(
                title=title,
                status="failed",
                attempts=len(e.attempts),
                error=e.message,
                payload=e.attempts[-1].fields if e.attempts else None,
            )

        report = reconciler.reconcile(outcome.ticket_key, plan.raw_values, outcome.persisted.keys())
        render_reconciliation(report)
        logger.success("Registered '%s' as %s", title, self.client.browse_url(outcome.ticket_key))

        return TicketResult(
            title=title,
            status="created",
            ticket_key=outcome.ticket_key,
            attempts=len(outcome.attempts),
            persisted_fields=[coerced.name for coerced in outcome.persisted.values()],
            removed_fields=_dropped(outcome.removed),
            reconciliation=report,
        )

    def register_all(self, records: Iterable[SourceRecord], limit: int | None = None) -> BatchResult:
        """Register records sequentially; a failed record never stops the batch.

        Raises:
            JiraConnectionError: If Jira becomes unreachable
            JiraAuthenticationError: If the credentials stop working

        """
        planner, _ = self.ensure_schema()
        unique = deduplicate_records(records, planner.title_column)
        if limit is not None:
            unique = unique[:limit]

        batch = BatchResult()
        for number, record in enumerate(unique, start=1):
            title = planner.title_of(record)
            logger.info("[%d/%d] %s", number, len(unique), title or "(untitled)")
            try:
                result = self.register_record(record)
            except FATAL_ERRORS:
                raise
            except Exception as e:  # noqa: BLE001
                logger.exception("Registering '%s' failed: %s", title, e)
                result = TicketResult(title=title, status="failed", error=str(e))
            batch.tickets.append(result)

        return batch

    def save_results(self, batch: BatchResult) -> Path:
        """Write the batch result as JSON under ``var/results``."""
        timestamp = datetime.now(tz=UTC).strftime("%Y%m%d_%H%M%S")
        results_file = config.get_path("results") / f"registration_{timestamp}.json"
        results_file.write_text(batch.model_dump_json(indent=2), encoding="utf-8")
        logger.info("Registration results saved to %s", results_file)
        return results_file

    def reconcile_existing(self, ticket_key: str, record: SourceRecord) -> ReconciliationReport:
        """Send every mapped field of ``record`` to an existing ticket."""
        planner, reconciler = self.ensure_schema()
        report = reconciler.reconcile(ticket_key, planner.raw_values_of(record))
        render_reconciliation(report)
        return report

    def analyze_existing(self, ticket_key: str, record: SourceRecord) -> ReconciliationReport:
        """Submit every mapped field of ``record`` alone to an existing ticket."""
        planner, reconciler = self.ensure_schema()
        return reconciler.analyze(ticket_key, planner.raw_values_of(record))

    def screen_report(self, ticket_key: str | None = None) -> dict[str, tuple[str | None, ScreenAvailability]]:
        """Create/edit availability of every mapped field, by mapped name.

        Edit availability is only known when an existing ticket is given.
        """
        planner, _ = self.ensure_schema()
        edit_metadata: dict[str, Any] = {}
        if ticket_key:
            try:
                edit_metadata = self.client.get_edit_metadata(ticket_key)
            except JiraApiError as e:
                logger.warning("Edit screen of %s unavailable: %s", ticket_key, e)

        availability = screen_availability(self.catalog, self.creation_metadata, edit_metadata)
        report: dict[str, tuple[str | None, ScreenAvailability]] = {}
        for name in planner.field_columns:
            descriptor = planner.creation_index.lookup(name)
            if descriptor is None:
                report[name] = (None, ScreenAvailability())
            else:
                report[name] = (descriptor.id, availability.get(descriptor.id, ScreenAvailability()))
        return report
