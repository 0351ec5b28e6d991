"""Type definitions for the Jira incident registrar.

This module contains the configuration types and literal aliases shared by
the config loader, the client and the submission pipeline.
"""

from typing import Any, Literal, NotRequired, TypedDict

type JiraData = dict[str, Any]
type SourceRecord = dict[str, str]

type ConfigValue = str | int | bool | dict[str, Any] | list[Any]


class JiraConfig(TypedDict):
    """Configuration for the Jira client."""

    url: str
    email: str
    api_token: str
    verify_ssl: bool
    project_key: str
    issue_type: str
    api_version: NotRequired[str]
    teams_path: NotRequired[str]


type LogLevel = Literal[
    "DEBUG",
    "INFO",
    "NOTICE",
    "WARNING",
    "ERROR",
    "CRITICAL",
    "SUCCESS",
]

type FragilityPolicy = Literal["unconfirmed", "first_rejection"]


class RegistrarConfig(TypedDict):
    """Configuration for the registration pipeline."""

    log_level: LogLevel
    dry_run: bool
    title_column: str
    description_columns: list[str]
    fields: dict[str, list[str]]
    protected_fields: list[str]
    fragile_fields: dict[str, FragilityPolicy]
    rejection_keywords: dict[str, list[str]]
    verify_fields: list[str]
    evidence_columns: list[str]
    max_reduction_rounds: NotRequired[int]


class Config(TypedDict):
    """Configuration for the config loader."""

    jira: JiraConfig
    registrar: RegistrarConfig


type SectionName = Literal["jira", "registrar"]

type TicketStatus = Literal["created", "skipped", "failed", "planned"]
type OutcomeStatus = Literal["confirmed", "rejected", "skipped"]

type DirType = Literal[
    "logs",
    "results",
    "root",
]

