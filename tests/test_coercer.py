"""Tests for value coercion per field type."""

import pytest

from registrar.fields.coercer import FieldCoercer, is_uuid, rewrite_date, split_tokens
from registrar.models.errors import CoercionFailure
from registrar.models.schema import AllowedValue, FieldDescriptor
from registrar.models.submission import AccountRef

pytestmark = pytest.mark.unit

TEAM_UUID = "f47ac10b-58cc-4372-a567-0e02b2c3d479"


@pytest.fixture
def coercer() -> FieldCoercer:
    return FieldCoercer()


def descriptor(schema_type: str = "string", item_kind: str | None = None, values: tuple = ()) -> FieldDescriptor:
    return FieldDescriptor(
        id="customfield_1",
        name="Campo",
        schema_type=schema_type,  # type: ignore[arg-type]
        array_item_kind=item_kind,  # type: ignore[arg-type]
        allowed_values=values,
    )


class TestHelpers:
    def test_split_tokens_trims_and_drops_empty(self) -> None:
        assert split_tokens("a, b , c,, ") == ["a", "b", "c"]

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("05/03/2024", "2024-03-05"),
            ("5/3/2024", "2024-03-05"),
            ("2024-03-05", "2024-03-05"),
            ("not-a-date", "not-a-date"),
            ("31/02/2024", "2024-02-31"),
        ],
    )
    def test_rewrite_date(self, raw: str, expected: str) -> None:
        assert rewrite_date(raw) == expected

    def test_is_uuid(self) -> None:
        assert is_uuid(TEAM_UUID)
        assert is_uuid(TEAM_UUID.upper())
        assert not is_uuid("Equipo Backend")


class TestCoerce:
    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_blank_input_is_omitted(self, coercer: FieldCoercer, raw: str | None) -> None:
        assert coercer.coerce(descriptor("option"), raw) is None

    def test_option_exact_match_beats_substring(self, coercer: FieldCoercer) -> None:
        values = (AllowedValue("1", "Alta prioridad"), AllowedValue("2", "Alta"))
        coerced = coercer.coerce(descriptor("option", values=values), "alta")
        assert coerced.value == {"id": "2"}
        assert coerced.confirmed

    def test_unmatched_option_falls_back_to_value(self, coercer: FieldCoercer) -> None:
        coerced = coercer.coerce(descriptor("option", values=(AllowedValue("1", "Web"),)), "Escritorio")
        assert coerced.value == {"value": "Escritorio"}
        assert not coerced.confirmed
        assert coerced.is_structurally_valid()

    def test_unmatched_priority_falls_back_to_name(self, coercer: FieldCoercer) -> None:
        values = (AllowedValue("1", "Highest"), AllowedValue("3", "Medium"), AllowedValue("5", "Low"))
        coerced = coercer.coerce(descriptor("priority", values=values), "Alta")
        assert coerced.payload() == {"name": "Alta"}

    def test_labels_are_split_verbatim(self, coercer: FieldCoercer) -> None:
        coerced = coercer.coerce(descriptor("array", "labels"), "a, b , c")
        assert coerced.payload() == ["a", "b", "c"]

    def test_option_array_mixes_ids_and_values(self, coercer: FieldCoercer) -> None:
        values = (AllowedValue("10", "Producción"), AllowedValue("11", "Pruebas"))
        coerced = coercer.coerce(descriptor("array", "option", values), "produccion, Staging")
        assert coerced.payload() == [{"id": "10"}, {"value": "Staging"}]
        assert not coerced.confirmed

    def test_array_without_tokens_fails(self, coercer: FieldCoercer) -> None:
        with pytest.raises(CoercionFailure) as exc_info:
            coercer.coerce(descriptor("array", "labels"), " , ,")
        assert exc_info.value.field_name == "Campo"

    def test_user_becomes_unresolved_placeholder(self, coercer: FieldCoercer) -> None:
        coerced = coercer.coerce(descriptor("user"), "Ana Pérez")
        assert coerced.value == AccountRef("Ana Pérez")
        assert not coerced.is_structurally_valid()

        coerced.value.account = {"accountId": "abc"}
        assert coerced.is_structurally_valid()
        assert coerced.payload() == {"accountId": "abc"}

    def test_user_array_yields_one_placeholder_per_token(self, coercer: FieldCoercer) -> None:
        coerced = coercer.coerce(descriptor("array", "user"), "ana, luis")
        assert [ref.query for ref in coerced.account_refs()] == ["ana", "luis"]

    def test_date_is_rewritten(self, coercer: FieldCoercer) -> None:
        assert coercer.coerce(descriptor("date"), "05/03/2024").value == "2024-03-05"
        assert coercer.coerce(descriptor("date"), "not-a-date").value == "not-a-date"

    def test_team_matched_is_bare_id(self, coercer: FieldCoercer) -> None:
        values = (AllowedValue("42", "Backend", alternate_ids=(TEAM_UUID,)),)
        coerced = coercer.coerce(descriptor("team", values=values), "backend")
        assert coerced.payload() == "42"
        assert coerced.is_structurally_valid()

    def test_team_uuid_passes_through(self, coercer: FieldCoercer) -> None:
        coerced = coercer.coerce(descriptor("team"), TEAM_UUID)
        assert coerced.payload() == TEAM_UUID
        assert coerced.confirmed

    def test_team_free_text_is_unconfirmed(self, coercer: FieldCoercer) -> None:
        coerced = coercer.coerce(descriptor("team"), "Equipo Backend")
        assert coerced.payload() == "Equipo Backend"
        assert not coerced.is_structurally_valid()

    def test_team_partial_name_is_not_matched(self, coercer: FieldCoercer) -> None:
        values = (AllowedValue("t-1", "Equipo Backend Pagos"), AllowedValue("t-2", "Equipo Frontend"))
        coerced = coercer.coerce(descriptor("team", values=values), "Backend")
        assert coerced.payload() == "Backend"
        assert not coerced.confirmed

    @pytest.mark.parametrize("schema_type", ["url", "string", "text"])
    def test_text_types_pass_through(self, coercer: FieldCoercer, schema_type: str) -> None:
        coerced = coercer.coerce(descriptor(schema_type), "https://example.com/x")
        assert coerced.value == "https://example.com/x"

    def test_text_keeps_surrounding_whitespace(self, coercer: FieldCoercer) -> None:
        raw = "  Pasos:\n    1. abrir la app\n"
        assert coercer.coerce(descriptor("text"), raw).value == raw
        assert coercer.coerce(descriptor("text"), "   ") is None
