import json
import re
from pathlib import Path

import pytest

from codeproof.config import ConfigError, load_config, load_rules
from codeproof.models import ContainerLimits
from codeproof.rules import run_rules


def _write(path: Path, payload) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_load_config_reads_all_sections(tmp_path: Path):
    config_path = _write(
        tmp_path / "codeproof.json",
        {
            "sandbox": "docker",
            "rules": "security",
            "rules_path": "rules.json",
            "install": ["requests"],
            "env": {"MODE": "ci", "RETRIES": 3},
            "timeout": 12,
            "limits": {"memory": "512m", "cpus": 1, "max_output_bytes": 2048},
        },
    )

    config = load_config(config_path)

    assert config.sandbox == "docker"
    assert config.rules == "security"
    assert config.rules_path == "rules.json"
    assert config.install == ("requests",)
    assert config.env == {"MODE": "ci", "RETRIES": "3"}
    assert config.timeout == 12
    assert config.limits == ContainerLimits(memory="512m", cpus=1.0, max_output_bytes=2048)


def test_load_config_defaults(tmp_path: Path):
    config = load_config(_write(tmp_path / "empty.json", {}))

    assert config.sandbox == "auto"
    assert config.rules == "all"
    assert config.rules_path is None
    assert config.timeout == 30
    assert config.limits == ContainerLimits()


def test_boolean_sandbox_and_rules(tmp_path: Path):
    config = load_config(_write(tmp_path / "c.json", {"sandbox": False, "rules": False}))

    assert config.sandbox == "none"
    assert config.rules == "none"


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"sandbox": "vm"},
        {"rules": "style"},
        {"env": ["A=1"]},
        {"timeout": 0},
        {"timeout": "soon"},
        {"limits": {"cpus": "lots"}},
        {"limits": {"pids_limit": -1}},
        {"install": "requests"},
    ],
)
def test_invalid_config_raises(tmp_path: Path, payload):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path / "bad.json", payload))


def test_missing_and_malformed_files(tmp_path: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError, match="not valid JSON"):
        load_config(broken)


def test_load_rules_builds_pattern_rules(tmp_path: Path):
    rules_path = _write(
        tmp_path / "rules.json",
        [
            {
                "id": "team/no-print",
                "name": "No print",
                "message": "Use logging instead of print",
                "severity": "warning",
                "pattern": "\\bprint\\(",
                "languages": ["py"],
                "suggestion": "logger.info(...)",
                "ignore_case": True,
            }
        ],
    )

    (rule,) = load_rules(rules_path)

    assert rule.id == "team/no-print"
    assert rule.languages == frozenset({"python"})
    assert rule.pattern.flags & re.IGNORECASE
    issues = run_rules("PRINT('x')", "python", [rule])
    assert [(issue.line, issue.suggestion) for issue in issues] == [(1, "logger.info(...)")]
    assert run_rules("print('x')", "javascript", [rule]) == []


@pytest.mark.parametrize(
    "entry, message",
    [
        ({"id": "a", "name": "a", "message": "m", "severity": "error"}, "missing keys: pattern"),
        ({"id": "a", "name": "a", "message": "m", "severity": "fatal", "pattern": "x"}, "invalid severity"),
        ({"id": "a", "name": "a", "message": "m", "severity": "error", "pattern": "("}, "invalid pattern"),
        (
            {"id": "a", "name": "a", "message": "m", "severity": "error", "pattern": "x", "languages": ["cobol"]},
            "Unknown language",
        ),
        ({"id": "", "name": "a", "message": "m", "severity": "error", "pattern": "x"}, "non-empty id"),
    ],
)
def test_invalid_rules_raise(tmp_path: Path, entry, message):
    with pytest.raises(ConfigError, match=message):
        load_rules(_write(tmp_path / "rules.json", [entry]))


def test_empty_rules_file_raises(tmp_path: Path):
    with pytest.raises(ConfigError, match="non-empty list"):
        load_rules(_write(tmp_path / "rules.json", []))


def test_example_config_and_rules_load():
    root = Path(__file__).resolve().parents[1]
    config = load_config(root / "configs" / "codeproof.example.json")
    rules = load_rules(root / "configs" / "team_rules.example.json")

    assert config.sandbox == "auto"
    assert config.rules_path == "configs/team_rules.example.json"
    assert any(rule.id == "team/no-insecure-http" for rule in rules)
