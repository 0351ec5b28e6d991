"""Tests for the creation request planner."""

from typing import Any

import pytest

from registrar.fields.schema_index import FieldSchemaIndex
from registrar.submission.planner import SubmissionPlanner, first_value
from registrar.submission.references import ReferenceResolver
from tests.utils.fake_jira import (
    CATALOG,
    DEVELOPER,
    ENVIRONMENT,
    PLATFORM,
    PRIORITY,
    REVIEW_DATE,
    DummyJiraClient,
    meta,
    options,
    priorities,
)

pytestmark = pytest.mark.unit

CREATION_METADATA = {
    PRIORITY["id"]: meta(PRIORITY, priorities("Highest", "Medium", "Low")),
    PLATFORM["id"]: meta(PLATFORM, options("Web", "Mobile")),
    ENVIRONMENT["id"]: meta(ENVIRONMENT, options("Producción", "Pruebas", start=20000)),
    REVIEW_DATE["id"]: meta(REVIEW_DATE),
    DEVELOPER["id"]: meta(DEVELOPER),
}


@pytest.fixture
def planner(settings: dict[str, Any]) -> SubmissionPlanner:
    index = FieldSchemaIndex.build(CATALOG, CREATION_METADATA, "create")
    jira = DummyJiraClient(users={"Ana": [{"accountId": "a-1", "displayName": "Ana Pérez"}]})
    return SubmissionPlanner(
        index,
        settings,
        project_key="INC",
        issue_type="Incidencia",
        resolver=ReferenceResolver(jira),
    )


def test_first_value_skips_blank_columns() -> None:
    record = {"A": " ", "B": " valor ", "C": "otro"}
    assert first_value(record, ["Missing", "A", "B", "C"]) == "valor"
    assert first_value(record, ["A"]) is None


def test_mandatory_fields(planner: SubmissionPlanner) -> None:
    plan = planner.plan({"Titulo": " Disk full ", "Descripción de la Novedad": "El disco está lleno"})

    assert plan.mandatory == {
        "project": {"key": "INC"},
        "summary": "Disk full",
        "description": "El disco está lleno",
        "issuetype": {"name": "Incidencia"},
    }


def test_description_falls_back_to_title(planner: SubmissionPlanner) -> None:
    plan = planner.plan({"Titulo": "Disk full", "Descripción": "  "})
    assert plan.mandatory["description"] == "Disk full"


def test_create_screen_fields_are_coerced(planner: SubmissionPlanner) -> None:
    plan = planner.plan(
        {
            "Titulo": "Disk full",
            "Prioridad": "medium",
            "Plataforma": "Web",
            "Entorno": "produccion, pruebas",
            "Fecha Revision Dev.": "5/3/2024",
        },
    )

    payload = plan.payload()
    assert payload["priority"] == {"id": "2"}
    assert payload[PLATFORM["id"]] == {"id": "10000"}
    assert payload[ENVIRONMENT["id"]] == [{"id": "20000"}, {"id": "20001"}]
    assert payload[REVIEW_DATE["id"]] == "2024-03-05"


def test_fields_off_the_create_screen_are_deferred(planner: SubmissionPlanner) -> None:
    plan = planner.plan({"Titulo": "Disk full", "Categoria": "Red", "Team": "Equipo Backend", "Plataforma": "Web"})

    assert plan.deferred == ["Categoria", "Team"]
    assert set(plan.creation_fields) == {PLATFORM["id"]}
    # Deferred fields keep their raw value for the follow-up update
    assert plan.raw_values == {"Plataforma": "Web", "Categoria": "Red", "Team": "Equipo Backend"}


def test_blank_values_are_left_out(planner: SubmissionPlanner) -> None:
    plan = planner.plan({"Titulo": "Disk full", "Plataforma": "   "})
    assert plan.creation_fields == {}
    assert plan.raw_values == {}


def test_list_without_tokens_is_recorded_as_failure(planner: SubmissionPlanner) -> None:
    plan = planner.plan({"Titulo": "Disk full", "Entorno": " , , "})

    assert ENVIRONMENT["id"] not in plan.creation_fields
    assert "Entorno" in plan.failures


def test_user_fields_are_resolved(planner: SubmissionPlanner) -> None:
    plan = planner.plan({"Titulo": "Disk full", "Desarrollador asignado": "Ana"})

    coerced = plan.creation_fields[DEVELOPER["id"]]
    assert coerced.confirmed
    assert plan.payload()[DEVELOPER["id"]] == {"accountId": "a-1"}


def test_unresolved_user_is_kept_for_the_loop_to_drop(planner: SubmissionPlanner) -> None:
    plan = planner.plan({"Titulo": "Disk full", "Desarrollador asignado": "Nadie"})

    coerced = plan.creation_fields[DEVELOPER["id"]]
    assert not coerced.is_structurally_valid()


def test_payload_of_a_subset(planner: SubmissionPlanner) -> None:
    plan = planner.plan({"Titulo": "Disk full", "Prioridad": "Low", "Plataforma": "Mobile"})

    payload = plan.payload({})
    assert set(payload) == {"project", "summary", "description", "issuetype"}


def test_string_column_mapping(settings: dict[str, Any]) -> None:
    settings["fields"] = {"Plataforma": "Sistema", "Priority": None}
    index = FieldSchemaIndex.build(CATALOG, CREATION_METADATA, "create")
    planner = SubmissionPlanner(index, settings, project_key="INC", issue_type="Incidencia")

    assert planner.field_columns == {"Plataforma": ["Sistema"], "Priority": ["Priority"]}
    assert planner.raw_values_of({"Sistema": "Web", "Priority": "Low"}) == {"Plataforma": "Web", "Priority": "Low"}
