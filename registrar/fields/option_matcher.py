"""Resolve free-text values against a field's vocabulary.

Matching is tiered and the first tier that hits wins:

1. exact: case-insensitive label equality, or the value is a reference id
2. normalized: accents stripped, case folded, whitespace collapsed
3. substring: normalized containment in either direction, longest label first

Exact matching comes first so that "QA" never lands on "QA Lead" when a
plain "QA" option exists; the substring tier prefers the most specific label.
"""

import re
import unicodedata
from collections.abc import Iterable

from registrar.models.schema import AllowedValue

_WHITESPACE = re.compile(r"\s+")


def normalize(value: str) -> str:
    """Lower-case, strip diacritics and collapse internal whitespace."""
    decomposed = unicodedata.normalize("NFD", value)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return _WHITESPACE.sub(" ", stripped).strip().lower()


class OptionMatcher:
    """Tiered matcher mapping a candidate string to a reference id."""

    def match(
        self,
        candidate: str,
        allowed_values: Iterable[AllowedValue],
        *,
        substring: bool = True,
    ) -> str | None:
        """Return the reference id of the best matching entry, or None.

        With ``substring=False`` only whole-label matches are accepted.
        """
        values = list(allowed_values)
        candidate = candidate.strip()
        if not candidate or not values:
            return None

        return (
            self._match_exact(candidate, values)
            or self._match_normalized(candidate, values)
            or (self._match_substring(candidate, values) if substring else None)
        )

    def _match_exact(self, candidate: str, values: list[AllowedValue]) -> str | None:
        folded = candidate.casefold()
        for value in values:
            if value.label.casefold() == folded:
                return value.reference_id
        for value in values:
            if candidate == value.reference_id or candidate in value.alternate_ids:
                return value.reference_id
        return None

    def _match_normalized(self, candidate: str, values: list[AllowedValue]) -> str | None:
        normalized = normalize(candidate)
        for value in values:
            if normalize(value.label) == normalized:
                return value.reference_id
        return None

    def _match_substring(self, candidate: str, values: list[AllowedValue]) -> str | None:
        normalized = normalize(candidate)
        ranked = sorted(values, key=lambda value: len(value.label), reverse=True)
        for value in ranked:
            label = normalize(value.label)
            # An empty label is a substring of everything
            if label and (label in normalized or normalized in label):
                return value.reference_id
        return None
