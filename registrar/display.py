"""
Centralized display utilities for console output.
Provides rich logging setup and the result tables shown after a run.
"""

import logging
import os
from typing import TYPE_CHECKING, Any, Protocol, cast

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.theme import Theme

if TYPE_CHECKING:
    from collections.abc import Mapping

    from registrar.models.results import BatchResult, ReconciliationReport
    from registrar.models.schema import ScreenAvailability


# Define Protocol for extended Logger with success and notice methods
class ExtendedLogger(Protocol):
    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def success(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def notice(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


# Create a custom theme for logging
LOGGING_THEME = Theme(
    {
        "logging.level.debug": "dim",
        "logging.level.info": "blue",
        "logging.level.notice": "cyan",
        "logging.level.warning": "bold yellow",
        "logging.level.error": "bold red",
        "logging.level.critical": "bold red on white",
        "logging.level.success": "bold green",
    }
)

OUTCOME_STYLES = {
    "confirmed": "green",
    "rejected": "red",
    "skipped": "yellow",
    "created": "green",
    "failed": "red",
    "planned": "cyan",
    "active": "green",
    "future": "cyan",
    "closed": "dim",
}

# Global console instance with theme
console = Console(theme=LOGGING_THEME)

# Set up a rich handler for logging
rich_handler = RichHandler(
    console=console,
    rich_tracebacks=True,
    tracebacks_show_locals=False,
    markup=True,
    show_time=True,
    show_level=True,
    enable_link_path=True,
    log_time_format="[%X]",
)


def configure_logging(
    level: str = "INFO", log_file: str | None = None
) -> ExtendedLogger:
    """
    Configure logging with rich formatting.

    Args:
        level: Logging level (DEBUG, INFO, NOTICE, SUCCESS, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a log file

    Returns:
        Configured logger instance
    """
    # Create a special success level (between INFO and WARNING)
    logging.addLevelName(25, "SUCCESS")

    # Create a NOTICE level (just above INFO)
    logging.addLevelName(21, "NOTICE")

    if level.upper() == "NOTICE":
        numeric_level = 21
    elif level.upper() == "SUCCESS":
        numeric_level = 25
    else:
        numeric_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [rich_handler]

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        # The log file gets a more detailed format than the console
        file_format = logging.Formatter(
            "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
        )
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(file_format)
        file_handler.setLevel(numeric_level)
        handlers.append(file_handler)

    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger("registrar")

    def success(self: logging.Logger, message: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(25):
            kwargs["extra"] = kwargs.get("extra", {})
            kwargs["extra"]["markup"] = True
            self._log(25, f"[green]{message}[/]", args, stacklevel=2, **kwargs)

    def notice(self: logging.Logger, message: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(21):
            kwargs["extra"] = kwargs.get("extra", {})
            kwargs["extra"]["markup"] = True
            self._log(21, message, args, stacklevel=2, **kwargs)

    setattr(logging.Logger, "success", success)
    setattr(logging.Logger, "notice", notice)

    logger.debug("Rich logging configured")
    if log_file:
        logger.debug("Log file: %s", log_file)

    return cast(ExtendedLogger, logger)


def _styled(status: str) -> str:
    style = OUTCOME_STYLES.get(status, "white")
    return f"[{style}]{status}[/]"


def render_reconciliation(report: "ReconciliationReport") -> None:
    """Print the per-field outcome table of one reconciliation pass."""
    if not report.outcomes:
        return

    table = Table(title=f"Field outcomes for {report.ticket_key}")
    table.add_column("Field", style="bold")
    table.add_column("Id", style="dim")
    table.add_column("Outcome")
    table.add_column("Message")

    for outcome in report.outcomes:
        table.add_row(
            outcome.field_name,
            outcome.field_id or "-",
            _styled(outcome.status),
            outcome.message,
        )
    console.print(table)


def render_field_analysis(
    report: "ReconciliationReport",
    availability: "Mapping[str, tuple[str | None, ScreenAvailability]]",
) -> None:
    """Print screen availability next to the outcome of each single-field update."""
    table = Table(title=f"Field analysis for {report.ticket_key}")
    table.add_column("Field", style="bold")
    table.add_column("Id", style="dim")
    table.add_column("Create")
    table.add_column("Edit")
    table.add_column("Outcome")
    table.add_column("Message")

    for outcome in report.outcomes:
        _, screens = availability.get(outcome.field_name, (None, None))
        table.add_row(
            outcome.field_name,
            outcome.field_id or "-",
            "-" if screens is None else ("yes" if screens.available_on_create else "no"),
            "-" if screens is None else ("yes" if screens.available_on_edit else "no"),
            _styled(outcome.status),
            outcome.message,
        )
    console.print(table)


def render_sprints(project_key: str, sprints: "list[tuple[dict[str, Any], dict[str, Any]]]") -> None:
    """Print one row per sprint with the board it belongs to."""
    table = Table(title=f"Sprints of {project_key} ({len(sprints)})")
    table.add_column("Board")
    table.add_column("Sprint", style="bold")
    table.add_column("Id", justify="right")
    table.add_column("State")
    table.add_column("Start", style="dim")
    table.add_column("End", style="dim")

    for board, sprint in sprints:
        table.add_row(
            str(board.get("name") or board.get("id")),
            str(sprint.get("name") or "-"),
            str(sprint.get("id")),
            _styled(str(sprint.get("state") or "-")),
            str(sprint.get("startDate") or "-")[:10],
            str(sprint.get("endDate") or "-")[:10],
        )
    console.print(table)


def render_batch_summary(batch: "BatchResult") -> None:
    """Print one row per ticket plus the aggregate counts."""
    table = Table(title="Registration summary")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Key")
    table.add_column("Dropped at creation")
    table.add_column("Notes")

    for index, ticket in enumerate(batch.tickets, start=1):
        dropped = ", ".join(removed.field_name for removed in ticket.removed_fields)
        table.add_row(
            str(index),
            ticket.title,
            _styled(ticket.status),
            ticket.ticket_key or "-",
            dropped or "-",
            ticket.error or "",
        )
    console.print(table)
    console.print(
        f"created={batch.created} skipped={batch.skipped} "
        f"failed={batch.failed} planned={batch.planned}"
    )
