"""Shape raw source strings into the JSON values Jira expects per field type."""

import re

from registrar.fields.option_matcher import OptionMatcher
from registrar.models.errors import CoercionFailure
from registrar.models.schema import FieldDescriptor
from registrar.models.submission import AccountRef, CoercedField

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
DAY_FIRST_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_uuid(value: str) -> bool:
    return bool(UUID_PATTERN.match(value.strip()))


def split_tokens(raw: str) -> list[str]:
    """Split a comma separated value, trimming and dropping empty tokens."""
    return [token.strip() for token in raw.split(",") if token.strip()]


def rewrite_date(raw: str) -> str:
    """Rewrite ``DD/MM/YYYY`` to ``YYYY-MM-DD``; anything else is returned as is.

    Jira validates dates itself, so unrecognized shapes are passed through.
    """
    value = raw.strip()
    if ISO_DATE.match(value):
        return value
    match = DAY_FIRST_DATE.match(value)
    if match:
        day, month, year = match.groups()
        return f"{year}-{int(month):02d}-{int(day):02d}"
    return value


class FieldCoercer:
    """Coerce raw values for any field given its descriptor.

    The same coercer serves the create and the edit phase; only the
    descriptor (and therefore the vocabulary) differs between them.
    """

    def __init__(self, matcher: OptionMatcher | None = None) -> None:
        self.matcher = matcher or OptionMatcher()

    def coerce(self, descriptor: FieldDescriptor, raw_value: str | None) -> CoercedField | None:
        """Return the coerced field, or None when the raw value is blank.

        Raises:
            CoercionFailure: If a non-blank value cannot be shaped for the field

        """
        if raw_value is None or not raw_value.strip():
            return None
        raw = raw_value.strip()

        match descriptor.schema_type:
            case "option" | "priority":
                return self._coerce_option(descriptor, raw)
            case "array":
                return self._coerce_array(descriptor, raw)
            case "user":
                return CoercedField(descriptor, raw, AccountRef(raw), confirmed=False)
            case "date":
                return CoercedField(descriptor, raw, rewrite_date(raw))
            case "team":
                return self._coerce_team(descriptor, raw)
            case _:
                # Free text is submitted exactly as written
                return CoercedField(descriptor, raw_value, raw_value)

    def _coerce_option(self, descriptor: FieldDescriptor, raw: str) -> CoercedField:
        reference_id = self.matcher.match(raw, descriptor.allowed_values)
        if reference_id is not None:
            return CoercedField(descriptor, raw, {"id": reference_id})

        # Last resort: reference by name and let Jira decide
        key = "name" if descriptor.schema_type == "priority" else "value"
        return CoercedField(descriptor, raw, {key: raw}, confirmed=False)

    def _coerce_array(self, descriptor: FieldDescriptor, raw: str) -> CoercedField:
        tokens = split_tokens(raw)
        if not tokens:
            msg = f"'{raw}' contains no values for list field {descriptor.name}"
            raise CoercionFailure(msg, descriptor.name)

        if descriptor.array_item_kind == "labels":
            return CoercedField(descriptor, raw, tokens)

        if descriptor.array_item_kind == "user":
            return CoercedField(descriptor, raw, [AccountRef(token) for token in tokens], confirmed=False)

        items: list[dict[str, str]] = []
        confirmed = True
        for token in tokens:
            reference_id = self.matcher.match(token, descriptor.allowed_values)
            if reference_id is not None:
                items.append({"id": reference_id})
            else:
                items.append({"value": token})
                confirmed = False
        return CoercedField(descriptor, raw, items, confirmed=confirmed)

    def _coerce_team(self, descriptor: FieldDescriptor, raw: str) -> CoercedField:
        # Team fields submit a bare identifier, not an object
        reference_id = self.matcher.match(raw, descriptor.allowed_values, substring=False)
        if reference_id is not None:
            return CoercedField(descriptor, raw, reference_id)
        if is_uuid(raw):
            return CoercedField(descriptor, raw, raw)
        return CoercedField(descriptor, raw, raw, confirmed=False)
