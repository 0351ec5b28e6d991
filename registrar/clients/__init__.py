"""API clients package for the Jira incident registrar.

Lazily expose the client class to avoid importing the jira library at
package import time.
"""

__all__ = ["JiraClient"]


def __getattr__(name: str) -> object:  # pragma: no cover - simple lazy import shim
    if name == "JiraClient":
        from .jira_client import JiraClient as _JiraClient  # noqa: PLC0415

        return _JiraClient
    raise AttributeError(name)
