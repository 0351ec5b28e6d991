"""Tests for the jreg command line."""

import copy
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from registrar import config
from registrar.clients.jira_client import JiraAuthenticationError
from registrar.main import build_parser, main
from tests.utils.fake_jira import SETTINGS, DummyJiraClient, reject

pytestmark = pytest.mark.unit

CSV = "Titulo,Descripción,Build asociada\nDisk full,Sin espacio,1.2.3\nCPU alta,Carga,1.2.4\n"


@pytest.fixture
def jira() -> DummyJiraClient:
    return DummyJiraClient(
        users={"Ana": [{"accountId": "a-1", "displayName": "Ana Pérez"}]},
        teams=[{"teamId": "uuid-backend", "title": "Equipo Backend"}],
    )


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep CLI overrides and result files away from the real configuration."""
    monkeypatch.setattr(config, "registrar_config", copy.deepcopy(SETTINGS))
    monkeypatch.setattr(config, "jira_config", {"project_key": "INC", "issue_type": "Incidencia"})
    monkeypatch.setattr(config, "get_path", lambda path_type: tmp_path)


def run(argv: list[str], jira: Any) -> int:
    with patch("registrar.main.JiraClient", return_value=jira), pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


def test_parser() -> None:
    args = build_parser().parse_args(["--project", "OPS", "register", "data.csv", "--dry-run", "--limit", "5"])

    assert args.project == "OPS"
    assert args.command == "register"
    assert args.csv == "data.csv"
    assert args.dry_run
    assert args.limit == 5
    assert not args.strict


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1
    assert "usage: jreg" in capsys.readouterr().out


def test_register(jira: DummyJiraClient, csv_file, tmp_path: Path) -> None:
    assert run(["register", str(csv_file(CSV))], jira) == 0

    assert [payload["summary"] for payload in jira.created] == ["Disk full", "CPU alta"]
    assert list(tmp_path.glob("registration_*.json"))


def test_register_dry_run_creates_nothing(jira: DummyJiraClient, csv_file) -> None:
    assert run(["register", str(csv_file(CSV)), "--dry-run"], jira) == 0
    assert jira.created == []


def test_project_option_overrides_configuration(jira: DummyJiraClient, csv_file) -> None:
    run(["--project", "OPS", "--issue-type", "Bug", "register", str(csv_file(CSV)), "--limit", "1"], jira)

    assert config.jira_config["project_key"] == "OPS"
    assert jira.created[0]["issuetype"] == {"name": "Bug"}


def test_failed_tickets_only_fail_in_strict_mode(jira: DummyJiraClient, csv_file) -> None:
    path = str(csv_file(CSV))
    jira.create_responses = [reject(summary="invalid")] * 3
    assert run(["register", path, "--limit", "1"], jira) == 0

    jira.create_responses = [reject(summary="invalid")] * 3
    assert run(["register", path, "--limit", "1", "--strict"], jira) == 1


def test_missing_csv_exits_with_error(jira: DummyJiraClient, tmp_path: Path) -> None:
    assert run(["register", str(tmp_path / "missing.csv")], jira) == 1


def test_jira_failure_exits_with_error() -> None:
    with (
        patch("registrar.main.JiraClient", side_effect=JiraAuthenticationError("bad token")),
        pytest.raises(SystemExit) as exc_info,
    ):
        main(["list-teams"])
    assert exc_info.value.code == 1


def test_reconcile_by_title(jira: DummyJiraClient, csv_file) -> None:
    assert run(["reconcile", "INC-9", str(csv_file(CSV)), "--title", "cpu alta"], jira) == 0
    assert jira.updates == [("INC-9", {"customfield_10021": "1.2.4"})]


def test_reconcile_unknown_title(jira: DummyJiraClient, csv_file) -> None:
    assert run(["reconcile", "INC-9", str(csv_file(CSV)), "--title", "nada"], jira) == 1
    assert jira.updates == []


def test_assign(jira: DummyJiraClient) -> None:
    assert run(["assign", "INC-3", "Ana"], jira) == 0
    assert jira.updates == [("INC-3", {"assignee": {"accountId": "a-1"}})]


def test_assign_unknown_user(jira: DummyJiraClient) -> None:
    assert run(["assign", "INC-3", "Nadie"], jira) == 1
    assert jira.updates == []


def test_list_teams(jira: DummyJiraClient) -> None:
    assert run(["list-teams"], jira) == 0
    assert jira.team_calls == 1


def test_screens(jira: DummyJiraClient) -> None:
    assert run(["screens", "--issue", "INC-1"], jira) == 0


def test_analyze(jira: DummyJiraClient, csv_file) -> None:
    jira.update_responses = [reject(customfield_10021="Unknown build")]

    assert run(["analyze", "INC-9", str(csv_file(CSV)), "--title", "Disk full"], jira) == 0
    assert jira.updates == [("INC-9", {"customfield_10021": "1.2.3"})]


def test_analyze_unknown_title(jira: DummyJiraClient, csv_file) -> None:
    assert run(["analyze", "INC-9", str(csv_file(CSV)), "--title", "nada"], jira) == 1
    assert jira.updates == []


def test_list_sprints(capsys: pytest.CaptureFixture[str]) -> None:
    jira = DummyJiraClient(
        boards=[{"id": 1, "name": "INC scrum"}, {"id": 2, "name": "INC kanban"}],
        sprints={1: [{"id": 31, "name": "Sprint 4", "state": "active", "startDate": "2024-03-04T09:00:00.000Z"}]},
    )

    assert run(["list-sprints"], jira) == 0
    output = capsys.readouterr().out
    assert "Sprint 4" in output
    assert "2024-03-04" in output


def test_list_sprints_without_boards() -> None:
    assert run(["list-sprints"], DummyJiraClient()) == 0
