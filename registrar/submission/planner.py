"""Turn a source record into the fields of a creation request."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from registrar.config import logger
from registrar.fields.coercer import FieldCoercer
from registrar.fields.schema_index import FieldSchemaIndex
from registrar.models.errors import CoercionFailure
from registrar.models.submission import CoercedField
from registrar.submission.references import ReferenceResolver
from registrar.type_definitions import SourceRecord

MANDATORY_FIELD_IDS: frozenset[str] = frozenset({"project", "summary", "description", "issuetype"})


def first_value(record: Mapping[str, str], columns: Iterable[str]) -> str | None:
    """Return the first non-blank value among ``columns``."""
    for column in columns:
        value = record.get(column)
        if value is not None and value.strip():
            return value.strip()
    return None


@dataclass(slots=True)
class SubmissionPlan:
    """Everything needed to create one ticket and reconcile it afterwards.

    ``raw_values`` maps every mapped field name with a value to its raw
    source string; the reconciler re-coerces from it against the edit screen.
    """

    title: str
    mandatory: dict[str, Any]
    creation_fields: dict[str, CoercedField] = field(default_factory=dict)
    raw_values: dict[str, str] = field(default_factory=dict)
    deferred: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    def payload(self, fields: Mapping[str, CoercedField] | None = None) -> dict[str, Any]:
        """Serialize the mandatory fields plus ``fields`` (default: all creation fields)."""
        fields = self.creation_fields if fields is None else fields
        return {**self.mandatory, **{field_id: coerced.payload() for field_id, coerced in fields.items()}}


class SubmissionPlanner:
    """Map source columns to Jira fields and coerce them for the create screen."""

    def __init__(
        self,
        creation_index: FieldSchemaIndex,
        settings: Mapping[str, Any],
        *,
        project_key: str,
        issue_type: str,
        coercer: FieldCoercer | None = None,
        resolver: ReferenceResolver | None = None,
    ) -> None:
        self.creation_index = creation_index
        self.project_key = project_key
        self.issue_type = issue_type
        self.coercer = coercer or FieldCoercer()
        self.resolver = resolver
        self.title_column: str = settings.get("title_column", "Titulo")
        self.description_columns: list[str] = list(settings.get("description_columns") or ())
        self.field_columns: dict[str, list[str]] = {
            name: [columns] if isinstance(columns, str) else list(columns or [name])
            for name, columns in (settings.get("fields") or {}).items()
        }

    def title_of(self, record: SourceRecord) -> str:
        return (record.get(self.title_column) or "").strip()

    def raw_values_of(self, record: SourceRecord) -> dict[str, str]:
        """Raw value of every mapped field, first non-blank source column wins."""
        values: dict[str, str] = {}
        for name, columns in self.field_columns.items():
            raw = first_value(record, columns)
            if raw is not None:
                values[name] = raw
        return values

    def plan(self, record: SourceRecord) -> SubmissionPlan:
        """Build the creation request for one record.

        Fields absent from the create screen are deferred to reconciliation.
        Values that cannot be coerced are dropped with a warning.
        """
        title = self.title_of(record)
        description = first_value(record, self.description_columns) or title
        plan = SubmissionPlan(
            title=title,
            mandatory={
                "project": {"key": self.project_key},
                "summary": title,
                "description": description,
                "issuetype": {"name": self.issue_type},
            },
        )

        plan.raw_values = self.raw_values_of(record)
        for name, raw in plan.raw_values.items():
            descriptor = self.creation_index.lookup(name)
            if descriptor is None or not self.creation_index.is_available(descriptor.id):
                logger.debug("Field '%s' is not on the create screen, deferring", name)
                plan.deferred.append(name)
                continue
            if descriptor.id in MANDATORY_FIELD_IDS or descriptor.id in plan.creation_fields:
                logger.debug("Field '%s' (%s) is already set, ignoring", name, descriptor.id)
                continue

            try:
                coerced = self.coercer.coerce(descriptor, raw)
            except CoercionFailure as e:
                logger.warning("Dropping field '%s': %s", name, e.message)
                plan.failures[name] = e.message
                continue
            if coerced is None:
                continue

            if coerced.account_refs() and self.resolver is not None:
                self.resolver.resolve_field(coerced)

            plan.creation_fields[descriptor.id] = coerced

        logger.info(
            "Planned '%s': %d field(s) for creation, %d deferred",
            title,
            len(plan.creation_fields),
            len(plan.deferred),
        )
        return plan
