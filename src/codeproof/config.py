from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from codeproof.models import AppConfig, ContainerLimits, SEVERITIES, resolve_language
from codeproof.rules import RULE_SETS
from codeproof.rules.base import Rule, RuleDefinitionError
from codeproof.sandbox import SANDBOX_CHOICES


class ConfigError(ValueError):
    pass


def load_config(path: str | Path) -> AppConfig:
    raw = _read_json(Path(path), "Config")
    if not isinstance(raw, dict):
        raise ConfigError("Config must be a JSON object")

    sandbox = raw.get("sandbox", "auto")
    if isinstance(sandbox, bool):
        sandbox = "auto" if sandbox else "none"
    sandbox = str(sandbox).strip().lower()
    if sandbox not in SANDBOX_CHOICES:
        raise ConfigError(f"'sandbox' must be one of: {', '.join(SANDBOX_CHOICES)}")

    rules = raw.get("rules", "all")
    if rules is False:
        rules = "none"
    rules = str(rules).strip().lower()
    if rules not in {"all", "none", *RULE_SETS}:
        raise ConfigError(f"'rules' must be one of: all, none, {', '.join(RULE_SETS)}")

    env_raw = raw.get("env", {})
    if not isinstance(env_raw, dict):
        raise ConfigError("'env' must be an object")

    limits_raw = raw.get("limits", {})
    if not isinstance(limits_raw, dict):
        raise ConfigError("'limits' must be an object")

    defaults = ContainerLimits()
    try:
        limits = ContainerLimits(
            memory=str(limits_raw.get("memory", defaults.memory)),
            cpus=float(limits_raw.get("cpus", defaults.cpus)),
            pids_limit=int(limits_raw.get("pids_limit", defaults.pids_limit)),
            tmpfs_size=str(limits_raw.get("tmpfs_size", defaults.tmpfs_size)),
            max_output_bytes=int(limits_raw.get("max_output_bytes", defaults.max_output_bytes)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid 'limits' value: {exc}") from exc
    if limits.cpus <= 0 or limits.pids_limit <= 0 or limits.max_output_bytes <= 0:
        raise ConfigError("'limits' values must be positive")

    return AppConfig(
        sandbox=sandbox,
        rules=rules,
        rules_path=_optional_str(raw.get("rules_path")),
        install=tuple(_ensure_string_list(raw.get("install", []))),
        env={str(key): str(value) for key, value in env_raw.items()},
        timeout=_positive_number(raw.get("timeout", 30), "timeout"),
        limits=limits,
    )


def load_rules(path: str | Path) -> list[Rule]:
    raw = _read_json(Path(path), "Rules")
    if not isinstance(raw, list) or not raw:
        raise ConfigError("Rules file must contain a non-empty list")

    rules: list[Rule] = []
    for item in raw:
        if not isinstance(item, dict):
            raise ConfigError("Each rule entry must be an object")

        missing = [
            key
            for key in ("id", "name", "message", "severity", "pattern")
            if key not in item
        ]
        if missing:
            raise ConfigError(f"Rule is missing keys: {', '.join(missing)}")

        severity = str(item["severity"]).strip().lower()
        if severity not in SEVERITIES:
            raise ConfigError(f"Rule {item['id']} has invalid severity: {item['severity']}")

        flags = re.IGNORECASE if item.get("ignore_case", False) else 0
        try:
            pattern = re.compile(str(item["pattern"]), flags)
        except re.error as exc:
            raise ConfigError(f"Rule {item['id']} has invalid pattern: {exc}") from exc

        try:
            rules.append(
                Rule(
                    id=str(item["id"]),
                    name=str(item["name"]),
                    message=str(item["message"]),
                    severity=severity,
                    pattern=pattern,
                    languages=_rule_languages(item.get("languages")),
                    suggestion=_optional_str(item.get("suggestion")),
                )
            )
        except RuleDefinitionError as exc:
            raise ConfigError(str(exc)) from exc

    return rules


def _read_json(path: Path, label: str) -> Any:
    if not path.exists():
        raise ConfigError(f"{label} file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        try:
            return json.load(handle)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"{label} file is not valid JSON: {path}: {exc}") from exc


def _rule_languages(value: object) -> frozenset[str] | None:
    if value is None:
        return None
    languages = set()
    for name in _ensure_string_list(value):
        language = resolve_language(name)
        if language is None:
            raise ConfigError(f"Unknown language in rule: {name}")
        languages.add(language)
    return frozenset(languages)


def _positive_number(value: Any, key: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{key}' must be a number") from exc
    if number <= 0:
        raise ConfigError(f"'{key}' must be positive")
    return number


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _ensure_string_list(value: object) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError("Expected a list of strings")
    return [str(item) for item in value]
