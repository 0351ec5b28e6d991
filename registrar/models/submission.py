"""Submission state: coerced values, attempts, rejections and degradation bookkeeping."""

from dataclasses import dataclass, field
from typing import Any

from registrar.models.schema import FieldDescriptor


@dataclass(slots=True)
class AccountRef:
    """Placeholder for a user reference until the directory lookup resolves it."""

    query: str
    account: dict[str, str] | None = None

    @property
    def resolved(self) -> bool:
        return bool(self.account)

    def payload(self) -> dict[str, str]:
        # Server and Data Center still accept a login name
        return dict(self.account) if self.account else {"name": self.query}


@dataclass(slots=True)
class CoercedField:
    """A raw source value shaped for one field.

    ``confirmed`` is true when the value was matched against the live
    vocabulary or its shape is guaranteed by the field type.
    """

    descriptor: FieldDescriptor
    raw: str
    value: Any
    confirmed: bool = True

    @property
    def field_id(self) -> str:
        return self.descriptor.id

    @property
    def name(self) -> str:
        return self.descriptor.name

    def account_refs(self) -> list[AccountRef]:
        """All user placeholders carried by this value."""
        if isinstance(self.value, AccountRef):
            return [self.value]
        if isinstance(self.value, list):
            return [item for item in self.value if isinstance(item, AccountRef)]
        return []

    def is_structurally_valid(self) -> bool:
        """Check the value against the structural rule of its own type."""
        descriptor = self.descriptor
        if descriptor.schema_type == "user" or (
            descriptor.schema_type == "array" and descriptor.array_item_kind == "user"
        ):
            refs = self.account_refs()
            return bool(refs) and all(ref.resolved for ref in refs)
        if descriptor.schema_type == "team":
            return self.confirmed
        return True

    def payload(self) -> Any:
        """Serialize the value into the JSON shape Jira expects."""
        if isinstance(self.value, AccountRef):
            return self.value.payload()
        if isinstance(self.value, list):
            return [item.payload() if isinstance(item, AccountRef) else item for item in self.value]
        return self.value


@dataclass(frozen=True, slots=True)
class Rejection:
    """Structured error body of a rejected create or update call."""

    field_errors: dict[str, str] = field(default_factory=dict)
    general_messages: tuple[str, ...] = ()
    status_code: int | None = None

    @classmethod
    def from_response_body(cls, body: Any, status_code: int | None = None) -> "Rejection":
        """Build a rejection from Jira's ``{"errors": {...}, "errorMessages": [...]}`` body."""
        if not isinstance(body, dict):
            text = str(body).strip()
            return cls(general_messages=(text,) if text else (), status_code=status_code)

        errors = body.get("errors") or {}
        messages = body.get("errorMessages") or []
        return cls(
            field_errors={str(k): str(v) for k, v in errors.items()} if isinstance(errors, dict) else {},
            general_messages=tuple(str(m) for m in messages),
            status_code=status_code,
        )

    def summary(self) -> str:
        parts = [f"{field_id}: {message}" for field_id, message in self.field_errors.items()]
        parts.extend(self.general_messages)
        return "; ".join(parts) or f"HTTP {self.status_code}"


@dataclass(frozen=True, slots=True)
class SubmissionAttempt:
    """One create or update call and what came back."""

    number: int
    fields: dict[str, Any]
    ticket_key: str | None = None
    rejection: Rejection | None = None


@dataclass(frozen=True, slots=True)
class RemovedField:
    """A field taken out of the creation payload, and why."""

    field_id: str
    field_name: str
    reason: str
    before_attempt: int


@dataclass(slots=True)
class DegradationState:
    """Per-ticket state threaded through the creation loop."""

    candidates: dict[str, CoercedField]
    removed: list[RemovedField] = field(default_factory=list)
    attempts: list[SubmissionAttempt] = field(default_factory=list)

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    def remove(self, field_id: str, reason: str) -> RemovedField | None:
        """Move a candidate to the removed list. Unknown ids are ignored."""
        coerced = self.candidates.pop(field_id, None)
        if coerced is None:
            return None
        removed = RemovedField(
            field_id=field_id,
            field_name=coerced.name,
            reason=reason,
            before_attempt=self.attempt_count + 1,
        )
        self.removed.append(removed)
        return removed

    def removed_ids(self) -> set[str]:
        return {removed.field_id for removed in self.removed}
