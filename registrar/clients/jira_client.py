"""Jira API client for the incident registrar.

Provides a clean, exception-based interface for the Jira resources the
registration pipeline needs: the field catalog, create/edit screen metadata,
ticket creation and update, the user and team directories, and the agile
boards and sprints of the project.
"""

import json
from typing import Any
from urllib.parse import quote

import jira
from jira.exceptions import JIRAError
from requests import Response
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import RequestException, Timeout

from registrar import config
from registrar.config import logger
from registrar.models.errors import ConfigurationError, SubmissionRejected
from registrar.models.submission import Rejection

HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_BAD_REQUEST_MIN = 400
HTTP_NOT_FOUND = 404
HTTP_GONE = 410


class JiraError(Exception):
    """Base exception for all Jira client errors."""


class JiraConnectionError(JiraError):
    """Error when connection to Jira server fails."""


class JiraAuthenticationError(JiraError):
    """Error when authentication to Jira fails."""


class JiraApiError(JiraError):
    """Error when Jira API returns an error response."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None) -> None:
        """Keep the status code and decoded body so callers can inspect field errors."""
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class JiraResourceNotFoundError(JiraApiError):
    """Error when a requested Jira resource is not found."""


class JiraCaptchaError(JiraError):
    """Error when Jira requires CAPTCHA resolution."""


def _decode_body(response: Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _decode_text(text: str | None) -> Any:
    try:
        return json.loads(text or "")
    except ValueError:
        return text


class JiraClient:
    """Jira client for API interactions.

    Methods raise exceptions instead of returning empty results on failure.
    The two submission calls translate HTTP 400 responses into
    ``SubmissionRejected`` so the degradation loop can inspect which fields
    Jira refused.
    """

    def __init__(
        self,
        url: str | None = None,
        email: str | None = None,
        api_token: str | None = None,
        *,
        verify_ssl: bool | None = None,
        project_key: str | None = None,
    ) -> None:
        """Initialize the Jira client from explicit arguments or the loaded configuration.

        Raises:
            ConfigurationError: If URL, token or project key are missing
            JiraAuthenticationError: If no authentication method succeeds

        """
        self.jira_url: str = url or config.jira_config.get("url", "")
        self.jira_email: str = email or config.jira_config.get("email", "")
        self.jira_token: str = api_token or config.jira_config.get("api_token", "")
        self.verify_ssl: bool = (
            verify_ssl if verify_ssl is not None else config.jira_config.get("verify_ssl", True)
        )
        self.project_key: str = project_key or config.jira_config.get("project_key", "")
        self.api_version: str = str(config.jira_config.get("api_version", "2"))
        self.teams_path: str = config.jira_config.get("teams_path", "/rest/api/3/team")

        if not self.jira_url:
            msg = "Jira URL is required"
            raise ConfigurationError(msg)
        if not self.jira_token:
            msg = "Jira API token is required"
            raise ConfigurationError(msg)
        if not self.project_key:
            msg = "Jira project key is required"
            raise ConfigurationError(msg)

        self.jira: jira.JIRA | None = None
        self.request_count = 0
        self.base_url = self.jira_url.rstrip("/")

        self._connect()
        self._patch_jira_client()

    @property
    def api_root(self) -> str:
        return f"/rest/api/{self.api_version}"

    def browse_url(self, ticket_key: str) -> str:
        return f"{self.base_url}/browse/{ticket_key}"

    def _connect(self) -> None:
        """Connect to the Jira API.

        Basic authentication with e-mail and API token is tried first (Jira
        Cloud), then bearer token authentication (Server/Data Center PAT).

        Raises:
            JiraAuthenticationError: If all authentication methods fail

        """
        connection_errors = []

        if self.jira_email:
            try:
                logger.info("Connecting to Jira at %s using basic authentication", self.jira_url)
                self.jira = jira.JIRA(
                    server=self.jira_url,
                    basic_auth=(self.jira_email, self.jira_token),
                    options={"verify": self.verify_ssl},
                )
                server_info = self.jira.server_info()
                logger.success(
                    "Connected to Jira server: %s (%s)",
                    server_info.get("baseUrl"),
                    server_info.get("version"),
                )
                return  # noqa: TRY300
            except Exception as e:  # noqa: BLE001
                error_msg = f"Basic authentication failed: {e!s}"
                logger.warning(error_msg)
                connection_errors.append(error_msg)

        try:
            self.jira = jira.JIRA(
                server=self.jira_url,
                token_auth=self.jira_token,
                options={"verify": self.verify_ssl},
            )
            server_info = self.jira.server_info()
            logger.success(
                "Connected to Jira server using token authentication: %s",
                server_info.get("baseUrl"),
            )
            return  # noqa: TRY300
        except Exception as e:  # noqa: BLE001
            error_msg = f"Token authentication failed: {e!s}"
            logger.warning(error_msg)
            connection_errors.append(error_msg)

        error_details = "; ".join(connection_errors)
        logger.error(
            "All authentication methods failed for Jira connection to %s",
            self.jira_url,
        )
        msg = f"Failed to authenticate with Jira: {error_details}"
        raise JiraAuthenticationError(msg) from None

    def _handle_response(self, response: Response) -> None:
        """Check response for CAPTCHA challenge and error status codes.

        Raises:
            JiraCaptchaError: If a CAPTCHA challenge is detected
            JiraAuthenticationError: On HTTP 401/403
            JiraResourceNotFoundError: On HTTP 404
            JiraApiError: On any other HTTP error status

        """
        if "X-Authentication-Denied-Reason" in response.headers:
            header_value = response.headers["X-Authentication-Denied-Reason"]
            if "CAPTCHA_CHALLENGE" in header_value:
                login_url = self.jira_url + "/login.jsp"
                if "; login-url=" in header_value:
                    login_url = header_value.split("; login-url=")[1].strip()

                logger.error(
                    "CAPTCHA challenge detected. Open %s in a browser, log in, then rerun",
                    login_url,
                )
                msg = f"CAPTCHA challenge detected. Please log in at {login_url} and retry"
                raise JiraCaptchaError(msg)

        if response.status_code >= HTTP_BAD_REQUEST_MIN:
            body = _decode_body(response)
            error_msg = f"HTTP Error {response.status_code}: {response.reason}"
            if isinstance(body, dict):
                if body.get("errorMessages"):
                    error_msg = f"{error_msg} - {', '.join(body['errorMessages'])}"
                if body.get("errors"):
                    error_msg = f"{error_msg} - {body['errors']}"

            if response.status_code == HTTP_NOT_FOUND:
                raise JiraResourceNotFoundError(error_msg, response.status_code, body) from None
            if response.status_code in {401, 403}:
                raise JiraAuthenticationError(error_msg) from None
            raise JiraApiError(error_msg, response.status_code, body) from None

    def _patch_jira_client(self) -> None:
        """Route every request of the JIRA session through ``_handle_response``."""
        if not self.jira:
            msg = "Cannot patch JIRA client: No active connection"
            raise JiraConnectionError(msg)

        original_request = self.jira._session.request  # noqa: SLF001

        def patched_request(method: str, url: str, **kwargs: object) -> Response:
            self.request_count += 1
            logger.debug("Jira request #%s: %s %s", self.request_count, method, url)
            try:
                response = original_request(method, url, **kwargs)
            except JIRAError as e:
                # The session raises on error statuses; map them like any other response
                if e.response is None:
                    msg = f"Error during API request to {url}: {e.text or e!s}"
                    raise JiraApiError(msg, e.status_code, _decode_text(e.text)) from e
                response = e.response
            except (RequestsConnectionError, Timeout) as e:
                msg = f"Could not reach Jira at {url}: {e!s}"
                raise JiraConnectionError(msg) from e
            except RequestException as e:
                msg = f"Error during API request to {url}: {e!s}"
                raise JiraApiError(msg) from e
            self._handle_response(response)
            return response

        self.jira._session.request = patched_request  # noqa: SLF001
        logger.debug("JIRA client patched to handle errors and CAPTCHA challenges")

    def _make_request(
        self,
        path: str,
        method: str = "GET",
        **kwargs: object,
    ) -> Response:
        """Make an API request relative to the server URL.

        Raises:
            JiraConnectionError: If client is not initialized or connection fails
            JiraApiError: If the API request fails

        """
        if not self.jira:
            msg = "Jira client is not initialized"
            raise JiraConnectionError(msg)

        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        return self.jira._session.request(method, url, headers=headers, **kwargs)  # noqa: SLF001

    def list_fields(self) -> list[dict[str, Any]]:
        """Get the complete field catalog (system and custom fields).

        Raises:
            JiraApiError: If the API request fails

        """
        if not self.jira:
            msg = "Jira client is not initialized"
            raise JiraConnectionError(msg)

        try:
            fields = self.jira.fields()
        except JiraError:
            raise
        except Exception as e:
            error_msg = f"Failed to retrieve field catalog: {e!s}"
            logger.exception(error_msg)
            raise JiraApiError(error_msg) from e

        logger.debug("Retrieved %d fields from Jira", len(fields))
        return fields

    def get_creation_metadata(self, issue_type_name: str) -> dict[str, dict[str, Any]]:
        """Get the create-screen fields of an issue type in the configured project.

        Uses the expanded ``issue/createmeta`` endpoint and falls back to the
        per-issue-type endpoint where the former has been retired.

        Returns:
            Mapping of field id to field metadata (schema, allowedValues, required)

        """
        params = {
            "projectKeys": self.project_key,
            "issuetypeNames": issue_type_name,
            "expand": "projects.issuetypes.fields",
        }
        try:
            response = self._make_request(f"{self.api_root}/issue/createmeta", params=params)
        except JiraApiError as e:
            if e.status_code not in {HTTP_NOT_FOUND, HTTP_GONE}:
                raise
            logger.debug("Expanded createmeta unavailable, using per issue type endpoint")
            return self._get_creation_metadata_by_issue_type(issue_type_name)

        data = response.json() or {}
        for project in data.get("projects") or []:
            for issue_type in project.get("issuetypes") or []:
                if issue_type.get("name") == issue_type_name:
                    return issue_type.get("fields") or {}
        return {}

    def _get_creation_metadata_by_issue_type(self, issue_type_name: str) -> dict[str, dict[str, Any]]:
        base = f"{self.api_root}/issue/createmeta/{quote(self.project_key)}/issuetypes"
        types = (self._make_request(base).json() or {}).get("values") or []
        issue_type_id = next((t.get("id") for t in types if t.get("name") == issue_type_name), None)
        if not issue_type_id:
            msg = f"Issue type '{issue_type_name}' not found in project {self.project_key}"
            raise JiraResourceNotFoundError(msg, HTTP_NOT_FOUND)

        response = self._make_request(f"{base}/{issue_type_id}", params={"maxResults": 200})
        values = (response.json() or {}).get("values") or []
        return {value["fieldId"]: value for value in values if value.get("fieldId")}

    def get_edit_metadata(self, ticket_key: str) -> dict[str, dict[str, Any]]:
        """Get the edit-screen fields of an existing ticket."""
        response = self._make_request(f"{self.api_root}/issue/{quote(ticket_key)}/editmeta")
        return (response.json() or {}).get("fields") or {}

    def create_ticket(self, fields: dict[str, Any]) -> str:
        """Create a ticket and return its key.

        Raises:
            SubmissionRejected: If Jira refuses the payload (HTTP 400)

        """
        try:
            response = self._make_request(
                f"{self.api_root}/issue",
                method="POST",
                json={"fields": fields},
            )
        except JiraApiError as e:
            if e.status_code == HTTP_BAD_REQUEST:
                raise SubmissionRejected(Rejection.from_response_body(e.body, e.status_code)) from e
            raise

        return response.json()["key"]

    def update_ticket(self, ticket_key: str, fields: dict[str, Any]) -> None:
        """Update fields of an existing ticket.

        Raises:
            SubmissionRejected: If Jira refuses the payload (HTTP 400)

        """
        try:
            self._make_request(
                f"{self.api_root}/issue/{quote(ticket_key)}",
                method="PUT",
                json={"fields": fields},
            )
        except JiraApiError as e:
            if e.status_code == HTTP_BAD_REQUEST:
                raise SubmissionRejected(Rejection.from_response_body(e.body, e.status_code)) from e
            raise

    def get_ticket_fields(self, ticket_key: str, field_ids: list[str]) -> dict[str, Any]:
        """Re-fetch selected field values of a ticket."""
        response = self._make_request(
            f"{self.api_root}/issue/{quote(ticket_key)}",
            params={"fields": ",".join(field_ids)},
        )
        return (response.json() or {}).get("fields") or {}

    def search_users(self, query: str, max_results: int = 10) -> list[dict[str, Any]]:
        """Search the user directory.

        Returns:
            List of user dictionaries with accountId, name, displayName and emailAddress

        """
        response = self._make_request(
            f"{self.api_root}/user/search",
            params={"query": query, "maxResults": max_results},
        )
        users = response.json() or []
        logger.debug("User search '%s' returned %d result(s)", query, len(users))
        return users

    def list_teams(self) -> list[dict[str, Any]]:
        """Get the team directory."""
        response = self._make_request(self.teams_path, params={"maxResults": 100})
        data = response.json() or []
        if isinstance(data, dict):
            data = data.get("values") or []
        return data

    def find_existing_ticket_by_exact_title(self, title: str) -> str | None:
        """Find a ticket of the project whose summary equals ``title`` (case-insensitive, trimmed)."""
        wanted = title.strip().casefold()
        escaped = title.strip().replace("\\", "\\\\").replace('"', '\\"')
        jql = f'project = "{self.project_key}" AND summary ~ "\\"{escaped}\\""'
        params = {"jql": jql, "fields": "summary", "maxResults": 50}

        try:
            response = self._make_request(f"{self.api_root}/search/jql", params=params)
        except JiraApiError as e:
            if e.status_code not in {HTTP_NOT_FOUND, HTTP_GONE}:
                raise
            response = self._make_request(f"{self.api_root}/search", params=params)

        for issue in (response.json() or {}).get("issues") or []:
            summary = ((issue.get("fields") or {}).get("summary") or "").strip().casefold()
            if summary == wanted:
                return issue.get("key")
        return None

    def list_boards(self) -> list[dict[str, Any]]:
        """Get the agile boards of the configured project."""
        response = self._make_request(
            "/rest/agile/1.0/board",
            params={"projectKeyOrId": self.project_key, "maxResults": 50},
        )
        return (response.json() or {}).get("values") or []

    def list_sprints(self, board_id: int | str) -> list[dict[str, Any]]:
        """Get the sprints of an agile board.

        Raises:
            JiraApiError: If the board does not support sprints (kanban boards)

        """
        response = self._make_request(
            f"/rest/agile/1.0/board/{board_id}/sprint",
            params={"maxResults": 50},
        )
        return (response.json() or {}).get("values") or []
