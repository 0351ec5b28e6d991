"""Main entry point for the Jira incident registrar.

Provides the ``jreg`` command line: register records from a CSV export,
re-run the follow-up update of an existing ticket, find the fields a ticket
refuses, assign a developer and inspect teams, sprints and screen
configuration.
"""

import argparse
import sys
from collections.abc import Sequence
from typing import Any

from rich.table import Table

from registrar import config
from registrar.clients.jira_client import JiraApiError, JiraClient, JiraError
from registrar.config import logger, update_from_cli_args
from registrar.display import console, render_batch_summary, render_field_analysis, render_sprints
from registrar.models.errors import RegistrarError, SubmissionRejected
from registrar.records import CsvRecordSource
from registrar.registration import TicketRegistrar
from registrar.submission.planner import SubmissionPlanner
from registrar.submission.references import ReferenceResolver, account_payload
from registrar.type_definitions import SourceRecord


def _records(path: str) -> CsvRecordSource:
    return CsvRecordSource(path, config.registrar_config.get("evidence_columns") or ())


def run_register(args: argparse.Namespace) -> int:
    """Register every record of the CSV file."""
    registrar = TicketRegistrar(JiraClient())
    registrar.load_schema()

    batch = registrar.register_all(_records(args.csv).read(), limit=args.limit)
    registrar.save_results(batch)
    render_batch_summary(batch)

    if batch.failed:
        logger.warning("%d ticket(s) could not be created", batch.failed)
        return 1 if args.strict else 0
    logger.success("Registration finished")
    return 0


def _select_record(planner: SubmissionPlanner, args: argparse.Namespace) -> SourceRecord | None:
    """Pick the record titled ``--title``, or the first record of the file."""
    records = _records(args.csv).read()
    if args.title:
        wanted = args.title.strip().casefold()
        records = [record for record in records if planner.title_of(record).casefold() == wanted]
    if not records:
        logger.error("No record titled '%s' in %s", args.title, args.csv)
        return None
    return records[0]


def run_reconcile(args: argparse.Namespace) -> int:
    """Send the mapped fields of one record to an existing ticket."""
    registrar = TicketRegistrar(JiraClient())
    planner, _ = registrar.ensure_schema()

    record = _select_record(planner, args)
    if record is None:
        return 1

    report = registrar.reconcile_existing(args.key, record)
    return 1 if report.rejected and args.strict else 0


def run_analyze(args: argparse.Namespace) -> int:
    """Try each mapped field of one record alone on an existing ticket."""
    registrar = TicketRegistrar(JiraClient())
    planner, _ = registrar.ensure_schema()

    record = _select_record(planner, args)
    if record is None:
        return 1

    availability = registrar.screen_report(args.key)
    report = registrar.analyze_existing(args.key, record)
    render_field_analysis(report, availability)
    if report.rejected:
        logger.warning("%d field(s) rejected on %s", len(report.rejected), args.key)
    return 0


def run_assign(args: argparse.Namespace) -> int:
    """Set the assignee of a ticket from a user name, login or e-mail."""
    client = JiraClient()
    user = ReferenceResolver(client).find_account(args.name)
    if user is None:
        logger.error("No Jira user matches '%s'", args.name)
        return 1

    logger.info("Assigning %s to %s (%s)", args.key, user.get("displayName"), user.get("emailAddress", "-"))
    try:
        client.update_ticket(args.key, {"assignee": account_payload(user)})
    except SubmissionRejected as e:
        logger.error("Could not assign %s: %s", args.key, e.rejection.summary())
        return 1
    logger.success("Assigned %s to %s", args.key, user.get("displayName"))
    return 0


def run_list_teams(args: argparse.Namespace) -> int:  # noqa: ARG001
    """Print the team directory."""
    teams = JiraClient().list_teams()
    if not teams:
        logger.warning("No teams found")
        return 0

    table = Table(title=f"Teams ({len(teams)})")
    table.add_column("Name", style="bold")
    table.add_column("Id", style="dim")
    for team in teams:
        table.add_row(
            str(team.get("title") or team.get("name") or team.get("displayName") or "-"),
            str(team.get("teamId") or team.get("id") or "-"),
        )
    console.print(table)
    return 0


def run_list_sprints(args: argparse.Namespace) -> int:  # noqa: ARG001
    """Print the sprints of every board of the project."""
    client = JiraClient()
    boards = client.list_boards()
    if not boards:
        logger.warning("No boards found for project %s", client.project_key)
        return 0

    sprints: list[tuple[dict[str, Any], dict[str, Any]]] = []
    for board in boards:
        try:
            sprints.extend((board, sprint) for sprint in client.list_sprints(board["id"]))
        except JiraApiError as e:
            logger.debug("Skipping board %s: %s", board.get("name"), e)

    if not sprints:
        logger.warning("No sprints found on the %d board(s) of %s", len(boards), client.project_key)
        return 0

    render_sprints(client.project_key, sprints)
    logger.info("Use the sprint id as the value of the sprint column")
    return 0


def run_screens(args: argparse.Namespace) -> int:
    """Show on which screens each mapped field is available."""
    registrar = TicketRegistrar(JiraClient())
    report = registrar.screen_report(args.issue)

    table = Table(title=f"Field availability for '{registrar.issue_type}'")
    table.add_column("Field", style="bold")
    table.add_column("Id", style="dim")
    table.add_column("Create")
    table.add_column("Edit")
    for name, (field_id, availability) in report.items():
        edit = "?" if not args.issue else ("yes" if availability.available_on_edit else "no")
        table.add_row(
            name,
            field_id or "not found",
            "yes" if availability.available_on_create else "no",
            edit,
        )
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jreg",
        description="Register incident records as Jira tickets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--project", help="Jira project key (overrides configuration)")
    parser.add_argument("--issue-type", dest="issue_type", help="Issue type name (overrides configuration)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    register_parser = subparsers.add_parser("register", help="Create tickets from a CSV export")
    register_parser.add_argument("csv", help="CSV file with one record per ticket")
    register_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Plan the tickets without creating anything",
    )
    register_parser.add_argument("--limit", type=int, help="Register at most this many records")
    register_parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when any ticket could not be created",
    )
    register_parser.set_defaults(handler=run_register)

    reconcile_parser = subparsers.add_parser(
        "reconcile",
        help="Update an existing ticket with the fields of a record",
    )
    reconcile_parser.add_argument("key", help="Ticket key, e.g. INC-42")
    reconcile_parser.add_argument("csv", help="CSV file containing the record")
    reconcile_parser.add_argument("--title", help="Title of the record to use (default: first record)")
    reconcile_parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when any field is rejected",
    )
    reconcile_parser.set_defaults(handler=run_reconcile)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Update an existing ticket one field at a time to find the fields it refuses",
    )
    analyze_parser.add_argument("key", help="Ticket key of a ticket meant for testing")
    analyze_parser.add_argument("csv", help="CSV file containing the record")
    analyze_parser.add_argument("--title", help="Title of the record to use (default: first record)")
    analyze_parser.set_defaults(handler=run_analyze)

    assign_parser = subparsers.add_parser("assign", help="Assign a ticket to a developer")
    assign_parser.add_argument("key", help="Ticket key")
    assign_parser.add_argument("name", help="Display name, login or e-mail of the developer")
    assign_parser.set_defaults(handler=run_assign)

    teams_parser = subparsers.add_parser("list-teams", help="List the available teams")
    teams_parser.set_defaults(handler=run_list_teams)

    sprints_parser = subparsers.add_parser("list-sprints", help="List the sprints of the project boards")
    sprints_parser.set_defaults(handler=run_list_sprints)

    screens_parser = subparsers.add_parser(
        "screens",
        help="Check which mapped fields are on the create and edit screens",
    )
    screens_parser.add_argument("--issue", help="Existing ticket whose edit screen should be checked")
    screens_parser.set_defaults(handler=run_screens)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Parse arguments and execute the appropriate command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    update_from_cli_args(args)

    try:
        exit_code = args.handler(args)
    except RegistrarError as e:
        logger.error(e.message)
        sys.exit(1)
    except JiraError as e:
        logger.error("Jira is not usable: %s", e)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Registration interrupted by user")
        sys.exit(1)
