"""Resolve user and team references against the Jira directories."""

from typing import TYPE_CHECKING, Any

from registrar.clients.jira_client import JiraApiError
from registrar.config import logger
from registrar.fields.coercer import is_uuid
from registrar.fields.option_matcher import OptionMatcher
from registrar.fields.schema_index import allowed_values_of
from registrar.models.schema import AllowedValue
from registrar.models.submission import CoercedField

if TYPE_CHECKING:
    from registrar.clients.jira_client import JiraClient

TRUNCATED_QUERY_LENGTH = 8


def account_payload(user: dict[str, Any]) -> dict[str, str]:
    """Reference a directory user the way the instance identifies accounts."""
    if user.get("accountId"):
        return {"accountId": str(user["accountId"])}
    return {"name": str(user.get("name") or user.get("key") or "")}


def pick_account(query: str, users: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Pick the user matching ``query`` exactly, then by display name containment."""
    folded = query.strip().casefold()
    for user in users:
        identities = (user.get("displayName"), user.get("name"), user.get("emailAddress"))
        if folded in {str(identity).strip().casefold() for identity in identities if identity}:
            return user

    for user in users:
        display_name = str(user.get("displayName") or "").casefold()
        if display_name and (folded in display_name or display_name in folded):
            return user
    return None


class ReferenceResolver:
    """Turn user names and team names into the identifiers Jira accepts.

    The team directory is fetched at most once per resolver.
    """

    def __init__(self, client: "JiraClient", matcher: OptionMatcher | None = None) -> None:
        self.client = client
        self.matcher = matcher or OptionMatcher()
        self._teams: tuple[AllowedValue, ...] | None = None

    def _search(self, query: str) -> list[dict[str, Any]]:
        try:
            return self.client.search_users(query)
        except JiraApiError as e:
            logger.warning("User search for '%s' failed: %s", query, e)
            return []

    def find_account(self, query: str) -> dict[str, Any] | None:
        """Find the directory entry for a user name, login or e-mail."""
        query = query.strip()
        if not query:
            return None

        users = self._search(query)
        user = pick_account(query, users)
        if user is not None:
            return user

        if not users and len(query) >= TRUNCATED_QUERY_LENGTH:
            truncated = query[:TRUNCATED_QUERY_LENGTH]
            logger.debug("No user found for '%s', retrying with '%s'", query, truncated)
            users = self._search(truncated)
            user = pick_account(query, users)
            if user is not None:
                return user

        if users:
            logger.debug(
                "No close match for '%s', using first result '%s'",
                query,
                users[0].get("displayName"),
            )
            return users[0]
        return None

    def resolve_account(self, query: str) -> dict[str, str] | None:
        user = self.find_account(query)
        return account_payload(user) if user is not None else None

    def resolve_field(self, coerced: CoercedField) -> bool:
        """Resolve every account placeholder of a field in place.

        Returns:
            True when all placeholders now reference an account

        """
        for ref in coerced.account_refs():
            if ref.resolved:
                continue
            ref.account = self.resolve_account(ref.query)
            if ref.account is None:
                logger.warning("No Jira user matches '%s' for field %s", ref.query, coerced.name)
            else:
                logger.debug("Resolved user '%s' to %s", ref.query, ref.account)

        refs = coerced.account_refs()
        resolved = bool(refs) and all(ref.resolved for ref in refs)
        if resolved:
            coerced.confirmed = True
        return resolved

    def teams(self) -> tuple[AllowedValue, ...]:
        if self._teams is None:
            try:
                self._teams = allowed_values_of(self.client.list_teams())
            except JiraApiError as e:
                logger.warning("Could not load the team directory: %s", e)
                self._teams = ()
            logger.debug("Loaded %d team(s)", len(self._teams))
        return self._teams

    def resolve_team(self, raw: str) -> str | None:
        """Return the team identifier for a name or id, or None when unknown."""
        raw = raw.strip()
        if is_uuid(raw):
            return raw
        # Whole names only, a partial name may belong to another team
        return self.matcher.match(raw, self.teams(), substring=False)
