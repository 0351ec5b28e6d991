"""Name and id lookups over the Jira field catalog and screen metadata."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from registrar.models.schema import (
    AllowedValue,
    ArrayItemKind,
    FieldDescriptor,
    SchemaType,
    ScreenAvailability,
)

type Screen = Literal["create", "edit"]

DIRECT_TYPES: set[str] = {"option", "priority", "user", "date", "team"}


def _custom_type(schema: Mapping[str, Any]) -> str:
    return str(schema.get("custom") or "").lower()


def schema_type_of(schema: Mapping[str, Any] | None) -> tuple[SchemaType, ArrayItemKind | None]:
    """Map a Jira ``schema`` block to a schema type and array item kind."""
    if not schema:
        return "string", None

    jira_type = str(schema.get("type") or "").lower()
    custom = _custom_type(schema)

    if "team" in custom and jira_type != "array":
        return "team", None
    if jira_type in DIRECT_TYPES:
        return jira_type, None  # type: ignore[return-value]
    if jira_type == "array":
        items = str(schema.get("items") or "").lower()
        if schema.get("system") == "labels" or custom.endswith(":labels"):
            return "array", "labels"
        if items == "option":
            return "array", "option"
        if items == "user":
            return "array", "user"
        return "array", "other"
    if custom.endswith(":url"):
        return "url", None
    if custom.endswith(":textarea"):
        return "text", None
    return "string", None


def allowed_values_of(entries: Iterable[Mapping[str, Any]] | None) -> tuple[AllowedValue, ...]:
    """Convert Jira ``allowedValues`` (options, priorities, teams) to AllowedValue entries."""
    values: list[AllowedValue] = []
    for entry in entries or ():
        if not isinstance(entry, Mapping):
            continue
        reference_id = entry.get("id") or entry.get("teamId") or entry.get("value")
        label = entry.get("value") or entry.get("name") or entry.get("title") or entry.get("displayName")
        if reference_id is None or label is None:
            continue
        alternates = tuple(
            str(entry[key])
            for key in ("teamId", "key")
            if entry.get(key) is not None and str(entry[key]) != str(reference_id)
        )
        values.append(AllowedValue(str(reference_id), str(label), alternates))
    return tuple(values)


def descriptor_from(catalog_entry: Mapping[str, Any], metadata: Mapping[str, Any] | None = None) -> FieldDescriptor:
    """Build a descriptor from a catalog entry, enriched by screen metadata when present."""
    metadata = metadata or {}
    schema = metadata.get("schema") or catalog_entry.get("schema")
    schema_type, item_kind = schema_type_of(schema)
    return FieldDescriptor(
        id=str(catalog_entry.get("id") or metadata.get("fieldId") or metadata.get("key")),
        name=str(catalog_entry.get("name") or metadata.get("name") or ""),
        schema_type=schema_type,
        array_item_kind=item_kind,
        allowed_values=allowed_values_of(metadata.get("allowedValues")),
        required=bool(metadata.get("required", False)),
    )


@dataclass(slots=True)
class FieldSchemaIndex:
    """Descriptors of one screen, addressable by display name or id."""

    screen: Screen
    by_id: dict[str, FieldDescriptor] = field(default_factory=dict)
    by_name: dict[str, FieldDescriptor] = field(default_factory=dict)
    available_ids: set[str] = field(default_factory=set)

    @classmethod
    def build(
        cls,
        catalog: Iterable[Mapping[str, Any]],
        metadata: Mapping[str, Mapping[str, Any]] | None,
        screen: Screen,
    ) -> "FieldSchemaIndex":
        """Index the catalog for one screen.

        When several catalog entries share a display name, the one available
        on ``screen`` wins; otherwise the first one seen is kept.
        """
        metadata = metadata or {}
        index = cls(screen=screen, available_ids=set(metadata))

        for entry in catalog:
            field_id = entry.get("id")
            if not field_id:
                continue
            descriptor = descriptor_from(entry, metadata.get(field_id))
            index.by_id[descriptor.id] = descriptor

            current = index.by_name.get(descriptor.name)
            if current is None or (
                current.id not in index.available_ids and descriptor.id in index.available_ids
            ):
                index.by_name[descriptor.name] = descriptor

        # Screen fields missing from the catalog still carry name and schema
        for field_id, meta in metadata.items():
            if field_id not in index.by_id and meta.get("name"):
                descriptor = descriptor_from({"id": field_id}, meta)
                index.by_id[field_id] = descriptor
                index.by_name.setdefault(descriptor.name, descriptor)

        return index

    def lookup(self, name_or_id: str) -> FieldDescriptor | None:
        """Find a descriptor by display name (case-insensitive fallback) or id."""
        if name_or_id in self.by_name:
            return self.by_name[name_or_id]
        if name_or_id in self.by_id:
            return self.by_id[name_or_id]
        folded = name_or_id.strip().casefold()
        for name, descriptor in self.by_name.items():
            if name.strip().casefold() == folded:
                return descriptor
        return None

    def is_available(self, field_id: str) -> bool:
        return field_id in self.available_ids


def screen_availability(
    catalog: Iterable[Mapping[str, Any]],
    creation_metadata: Mapping[str, Any] | None,
    edit_metadata: Mapping[str, Any] | None,
) -> dict[str, ScreenAvailability]:
    """Compute create/edit availability for every catalog field."""
    creation_metadata = creation_metadata or {}
    edit_metadata = edit_metadata or {}
    return {
        str(entry["id"]): ScreenAvailability(
            available_on_create=entry["id"] in creation_metadata,
            available_on_edit=entry["id"] in edit_metadata,
        )
        for entry in catalog
        if entry.get("id")
    }
