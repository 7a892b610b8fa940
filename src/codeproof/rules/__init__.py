from __future__ import annotations

from typing import Any

from codeproof.rules.ai_mistakes import AI_MISTAKE_RULES
from codeproof.rules.base import Rule, RuleDefinitionError
from codeproof.rules.code_quality import CODE_QUALITY_RULES
from codeproof.rules.engine import run_rules
from codeproof.rules.security import SECURITY_RULES


RULE_SETS: dict[str, list[Rule]] = {
    "security": SECURITY_RULES,
    "ai-mistakes": AI_MISTAKE_RULES,
    "code-quality": CODE_QUALITY_RULES,
}

ALL_RULES: list[Rule] = [rule for rules in RULE_SETS.values() for rule in rules]


def resolve_rules(value: Any) -> list[Rule]:
    if value is None or value is True:
        return list(ALL_RULES)
    if value is False:
        return []

    if isinstance(value, str):
        name = value.strip().lower()
        if name == "all":
            return list(ALL_RULES)
        if name == "none":
            return []
        if name not in RULE_SETS:
            raise ValueError(
                f"Unknown rule set: {value}. Expected one of: all, none, {', '.join(RULE_SETS)}"
            )
        return list(RULE_SETS[name])

    rules = list(value)
    for rule in rules:
        if not isinstance(rule, Rule):
            raise ValueError(f"Expected Rule instances, got {type(rule).__name__}")
    return rules


__all__ = [
    "ALL_RULES",
    "RULE_SETS",
    "Rule",
    "RuleDefinitionError",
    "resolve_rules",
    "run_rules",
]
