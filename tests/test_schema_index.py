"""Tests for the field schema index."""

import pytest

from registrar.fields.schema_index import (
    FieldSchemaIndex,
    allowed_values_of,
    schema_type_of,
    screen_availability,
)
from tests.utils.fake_jira import (
    CATALOG,
    PLATFORM,
    SELECT,
    TEAM_FIELD,
    field,
    meta,
    options,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("schema", "expected"),
    [
        (None, ("string", None)),
        ({"type": "option", "custom": SELECT}, ("option", None)),
        ({"type": "priority", "system": "priority"}, ("priority", None)),
        ({"type": "user", "system": "assignee"}, ("user", None)),
        ({"type": "date"}, ("date", None)),
        ({"type": "array", "items": "string", "system": "labels"}, ("array", "labels")),
        ({"type": "array", "items": "option"}, ("array", "option")),
        ({"type": "array", "items": "user"}, ("array", "user")),
        ({"type": "array", "items": "version"}, ("array", "other")),
        ({"type": "string", "custom": "com.atlassian.jira.plugin.system.customfieldtypes:url"}, ("url", None)),
        ({"type": "string", "custom": "com.atlassian.jira.plugin.system.customfieldtypes:textarea"}, ("text", None)),
        ({"type": "any", "custom": "com.atlassian.teams:rm-teams-custom-field-team"}, ("team", None)),
        ({"type": "number"}, ("string", None)),
    ],
)
def test_schema_type_of(schema: dict | None, expected: tuple) -> None:
    assert schema_type_of(schema) == expected


def test_allowed_values_of_reads_options_priorities_and_teams() -> None:
    values = allowed_values_of(
        [
            {"id": "1", "value": "Web"},
            {"id": "2", "name": "Highest"},
            {"id": "77", "teamId": "uuid-1", "title": "Backend"},
            {"disabled": True},
        ],
    )
    assert [(v.reference_id, v.label) for v in values] == [("1", "Web"), ("2", "Highest"), ("77", "Backend")]
    assert values[2].alternate_ids == ("uuid-1",)


def test_lookup_by_name_id_and_case() -> None:
    index = FieldSchemaIndex.build(CATALOG, {}, "create")
    assert index.lookup("Plataforma").id == PLATFORM["id"]
    assert index.lookup(PLATFORM["id"]).name == "Plataforma"
    assert index.lookup("plataforma ").id == PLATFORM["id"]
    assert index.lookup("No existe") is None


def test_metadata_supplies_type_and_vocabulary() -> None:
    index = FieldSchemaIndex.build(CATALOG, {PLATFORM["id"]: meta(PLATFORM, options("Web", "Mobile"))}, "create")
    descriptor = index.lookup("Plataforma")
    assert descriptor.schema_type == "option"
    assert [v.label for v in descriptor.allowed_values] == ["Web", "Mobile"]
    assert index.is_available(PLATFORM["id"])
    assert not index.is_available(TEAM_FIELD["id"])


def test_duplicate_names_prefer_field_on_screen() -> None:
    first = field("customfield_1", "Tipo", "option", SELECT)
    second = field("customfield_2", "Tipo", "option", SELECT)

    on_second = FieldSchemaIndex.build([first, second], {"customfield_2": meta(second)}, "edit")
    assert on_second.lookup("Tipo").id == "customfield_2"

    on_none = FieldSchemaIndex.build([first, second], {}, "edit")
    assert on_none.lookup("Tipo").id == "customfield_1"

    # Both ids stay reachable
    assert on_second.lookup("customfield_1").id == "customfield_1"


def test_screen_fields_missing_from_catalog_are_indexed() -> None:
    extra = field("customfield_9", "Oculto", "option", SELECT)
    index = FieldSchemaIndex.build([], {"customfield_9": meta(extra, options("A"))}, "create")
    assert index.lookup("Oculto").allowed_values[0].label == "A"


def test_screen_availability() -> None:
    availability = screen_availability(
        CATALOG,
        {PLATFORM["id"]: {}},
        {PLATFORM["id"]: {}, TEAM_FIELD["id"]: {}},
    )
    assert availability[PLATFORM["id"]].available_on_create
    assert availability[PLATFORM["id"]].available_on_edit
    assert not availability[TEAM_FIELD["id"]].available_on_create
    assert availability[TEAM_FIELD["id"]].available_on_edit
    assert not availability["summary"].available_on_edit
