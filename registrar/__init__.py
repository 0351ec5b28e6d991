"""Jira incident registrar.

Creates Jira tickets from CSV incident exports, coercing each column into the
shape the target field expects and degrading gracefully when Jira rejects
part of the payload.
"""

__version__ = "0.1.0"
