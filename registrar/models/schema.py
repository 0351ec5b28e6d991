"""Field schema types describing Jira fields as seen by the coercer."""

from dataclasses import dataclass
from typing import Literal

type SchemaType = Literal[
    "option",
    "priority",
    "array",
    "user",
    "date",
    "team",
    "url",
    "string",
    "text",
]

type ArrayItemKind = Literal["labels", "option", "user", "other"]


@dataclass(frozen=True, slots=True)
class AllowedValue:
    """One entry of a field's vocabulary (option, priority, team)."""

    reference_id: str
    label: str
    alternate_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """Identity and type of one Jira field."""

    id: str
    name: str
    schema_type: SchemaType = "string"
    array_item_kind: ArrayItemKind | None = None
    allowed_values: tuple[AllowedValue, ...] = ()
    required: bool = False


@dataclass(frozen=True, slots=True)
class ScreenAvailability:
    """Whether a field is exposed on the create and edit screens."""

    available_on_create: bool = False
    available_on_edit: bool = False
