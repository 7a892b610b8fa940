from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable

from codeproof.models import LANGUAGES, SEVERITIES, RuleMatch


RuleCheck = Callable[[str, str], list[RuleMatch]]


class RuleDefinitionError(ValueError):
    pass


@dataclass(frozen=True)
class Rule:
    id: str
    name: str
    message: str
    severity: str
    languages: frozenset[str] | None = None
    pattern: re.Pattern[str] | None = None
    check: RuleCheck | None = None
    suggestion: str | None = None

    def __post_init__(self) -> None:
        for key in ("id", "name", "message", "severity"):
            if not getattr(self, key):
                raise RuleDefinitionError(f"Rule must define a non-empty {key}")
        if self.severity not in SEVERITIES:
            raise RuleDefinitionError(
                f"Rule {self.id} has invalid severity {self.severity!r}; "
                f"expected one of: {', '.join(SEVERITIES)}"
            )
        if self.pattern is None and self.check is None:
            raise RuleDefinitionError(
                f"Rule {self.id} must have either a pattern or a check function"
            )

        if isinstance(self.pattern, str):
            try:
                object.__setattr__(self, "pattern", re.compile(self.pattern))
            except re.error as exc:
                raise RuleDefinitionError(f"Rule {self.id} has invalid pattern: {exc}") from exc

        if self.languages is not None:
            languages = frozenset(_as_iterable(self.languages))
            unknown = sorted(languages.difference(LANGUAGES))
            if unknown:
                raise RuleDefinitionError(
                    f"Rule {self.id} references unknown languages: {', '.join(unknown)}"
                )
            object.__setattr__(self, "languages", languages)

    @property
    def category(self) -> str:
        return self.id.split("/", 1)[0]

    def applies_to(self, language: str) -> bool:
        if self.languages is None or language not in LANGUAGES:
            return True
        return language in self.languages


def _as_iterable(value: str | Iterable[str]) -> Iterable[str]:
    if isinstance(value, str):
        return (value,)
    return value
