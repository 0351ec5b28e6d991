"""Shared pytest fixtures and configuration for all tests."""

import copy
import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from _pytest.config import Config

from registrar.fields.policy import RegistrationPolicy
from tests.utils.fake_jira import SETTINGS, DummyJiraClient


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark a test as a unit test")
    config.addinivalue_line(
        "markers",
        "integration: mark a test as an integration test against a live Jira",
    )


def _env_flag(name: str, default: bool = False) -> bool:
    """Read boolean environment flag (true/false)."""
    val = os.environ.get(name, "true" if default else "false").strip().lower()
    return val in {"1", "true", "yes", "on"}


def pytest_collection_modifyitems(config: Config, items: list[pytest.Item]) -> None:  # noqa: ARG001
    """Apply default skipping for integration and unmarked tests.

    - Integration tests are skipped unless JREG_RUN_INTEGRATION is true.
    - Unmarked tests are skipped unless JREG_RUN_ALL_TESTS is true.
    """
    run_all = _env_flag("JREG_RUN_ALL_TESTS", False)
    run_integration = _env_flag("JREG_RUN_INTEGRATION", False) or run_all

    skip_integration = pytest.mark.skip(
        reason="Integration tests disabled by default. Set JREG_RUN_INTEGRATION=true to enable.",
    )
    skip_unmarked = pytest.mark.skip(
        reason="Unmarked test skipped by default. Mark with unit/integration or set JREG_RUN_ALL_TESTS=true.",
    )

    for item in items:
        kws = item.keywords
        if "integration" in kws and not run_integration:
            item.add_marker(skip_integration)
            continue
        if not run_all and not any(m in kws for m in ("unit", "integration")):
            item.add_marker(skip_unmarked)


@pytest.fixture
def settings() -> dict[str, Any]:
    """A private copy of the registrar settings used across the suite."""
    return copy.deepcopy(SETTINGS)


@pytest.fixture
def policy(settings: dict[str, Any]) -> RegistrationPolicy:
    return RegistrationPolicy.from_config(settings)


@pytest.fixture
def jira() -> DummyJiraClient:
    return DummyJiraClient()


@pytest.fixture
def csv_file(tmp_path: Path) -> Generator[Any, None, None]:
    """Write CSV text to a temporary file and return its path."""

    def _write(content: str, name: str = "incidencias.csv") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    yield _write
