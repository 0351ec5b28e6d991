"""Declarative degradation policy: protected fields, fragile fields, rejection keywords."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from registrar.type_definitions import FragilityPolicy

FRAGILITY_POLICIES: set[str] = {"unconfirmed", "first_rejection"}


def _fold(name: str) -> str:
    return name.strip().casefold()


@dataclass(frozen=True, slots=True)
class RegistrationPolicy:
    """How the creation loop treats individual fields.

    - ``protected_fields``: never dropped because of a complaint about some
      other field; only when named in the rejection or structurally invalid.
    - ``fragile_fields``: ``unconfirmed`` fields are dropped before the first
      attempt unless their value was confirmed; ``first_rejection`` fields
      are dropped on the first rejection even if Jira does not name them.
    - ``rejection_keywords``: keyword found in a general error message ->
      field names (or ids) to suspect.
    """

    protected_fields: frozenset[str] = frozenset()
    fragile_fields: Mapping[str, FragilityPolicy] = field(default_factory=dict)
    rejection_keywords: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    verify_fields: tuple[str, ...] = ()
    max_reduction_rounds: int = 2

    @classmethod
    def from_config(cls, settings: Mapping[str, Any]) -> "RegistrationPolicy":
        """Build the policy from the ``registrar`` configuration section.

        Raises:
            ValueError: If a fragile field uses an unknown policy

        """
        fragile: dict[str, FragilityPolicy] = {}
        for name, policy in (settings.get("fragile_fields") or {}).items():
            if policy not in FRAGILITY_POLICIES:
                msg = f"Unknown fragility policy '{policy}' for field '{name}'"
                raise ValueError(msg)
            fragile[_fold(name)] = policy

        keywords = {
            str(keyword).casefold(): tuple(_as_list(targets))
            for keyword, targets in (settings.get("rejection_keywords") or {}).items()
        }
        return cls(
            protected_fields=frozenset(_fold(name) for name in settings.get("protected_fields") or ()),
            fragile_fields=fragile,
            rejection_keywords=keywords,
            verify_fields=tuple(settings.get("verify_fields") or ()),
            max_reduction_rounds=int(settings.get("max_reduction_rounds", 2)),
        )

    def is_protected(self, *names: str) -> bool:
        """True if any of the given names or ids is protected."""
        return any(_fold(name) in self.protected_fields for name in names if name)

    def fragility(self, *names: str) -> FragilityPolicy | None:
        for name in names:
            if name and _fold(name) in self.fragile_fields:
                return self.fragile_fields[_fold(name)]
        return None

    def suspects_for(self, messages: Iterable[str]) -> set[str]:
        """Field names or ids suggested by keywords found in free-text messages."""
        suspects: set[str] = set()
        for message in messages:
            folded = message.casefold()
            for keyword, targets in self.rejection_keywords.items():
                if keyword in folded:
                    suspects.update(_fold(target) for target in targets)
        return suspects


def _as_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value or ()]
