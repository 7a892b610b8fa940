from __future__ import annotations

from typing import Iterable

from codeproof.models import Issue
from codeproof.rules.base import Rule


def run_rules(code: str, language: str, rules: Iterable[Rule]) -> list[Issue]:
    issues: list[Issue] = []
    lines: list[str] | None = None

    for rule in rules:
        if not rule.applies_to(language):
            continue

        if rule.pattern is not None:
            if lines is None:
                lines = code.split("\n")
            for line_index, line in enumerate(lines, start=1):
                if rule.pattern.search(line):
                    issues.append(
                        Issue(
                            source="rule",
                            severity=rule.severity,
                            message=rule.message,
                            rule_id=rule.id,
                            line=line_index,
                            suggestion=rule.suggestion,
                        )
                    )

        if rule.check is not None:
            for match in rule.check(code, language):
                issues.append(
                    Issue(
                        source="rule",
                        severity=rule.severity,
                        message=match.message or rule.message,
                        rule_id=rule.id,
                        line=match.line,
                        suggestion=match.suggestion or rule.suggestion,
                    )
                )

    return issues
