import io
import json
from pathlib import Path

import pytest

from codeproof.cli import main


def test_verify_code_passes(capsys):
    exit_code = main(["verify", "--code", "print('hi')", "--language", "python", "--sandbox", "none"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "✓ Verification passed" in out


def test_verify_json_failure(capsys):
    exit_code = main(
        [
            "verify",
            "--code",
            'api_key = "sk-1234567890abcdefghijklmnop"',
            "--language",
            "python",
            "--sandbox",
            "none",
            "--rules",
            "security",
            "--json",
        ]
    )

    data = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert data["passed"] is False
    assert data["issues"][0]["rule_id"] == "security/no-hardcoded-secrets"


def test_check_file(tmp_path: Path, capsys):
    script = tmp_path / "broken.js"
    script.write_text("function f() {\n  return 1;\n", encoding="utf-8")

    exit_code = main(["check", str(script), "--sandbox", "none"])

    assert exit_code == 1
    assert "Unbalanced braces" in capsys.readouterr().out


def test_missing_input_exits_2(capsys):
    exit_code = main(["verify", "--sandbox", "none"])

    assert exit_code == 2
    assert "Error:" in capsys.readouterr().err


def test_bad_config_is_usage_error(tmp_path: Path):
    config = tmp_path / "codeproof.json"
    config.write_text(json.dumps({"sandbox": "vm"}), encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["verify", "--code", "x", "--config", str(config)])

    assert excinfo.value.code == 2


def test_bad_env_is_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        main(["verify", "--code", "x", "--sandbox", "none", "--env", "NOVALUE"])

    assert excinfo.value.code == 2


def test_config_file_supplies_defaults(tmp_path: Path, capsys):
    rules_file = tmp_path / "rules.json"
    rules_file.write_text(
        json.dumps(
            [
                {
                    "id": "team/no-forbidden",
                    "name": "No forbidden",
                    "message": "Forbidden identifier",
                    "severity": "error",
                    "pattern": "forbidden",
                }
            ]
        ),
        encoding="utf-8",
    )
    config = tmp_path / "codeproof.json"
    config.write_text(
        json.dumps({"sandbox": "none", "rules": "none", "rules_path": str(rules_file)}),
        encoding="utf-8",
    )

    exit_code = main(["verify", "--code", "forbidden = 1", "--language", "python", "--config", str(config)])

    out = capsys.readouterr().out
    assert exit_code == 1
    assert "[team/no-forbidden]" in out


def test_stdin_and_output_dir(tmp_path: Path, monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("print(1)\n"))

    exit_code = main(
        ["verify", "--stdin", "--language", "python", "--sandbox", "none", "--output-dir", str(tmp_path / "out")]
    )

    captured = capsys.readouterr()
    assert exit_code == 0
    assert (tmp_path / "out" / "verify_summary.json").exists()
    assert "block(s) verified" in captured.err


def test_rules_list(capsys):
    assert main(["rules", "list", "--json"]) == 0
    rules = json.loads(capsys.readouterr().out)
    assert len(rules) == 10
    assert rules[0]["id"] == "security/no-hardcoded-secrets"

    assert main(["rules", "list"]) == 0
    out = capsys.readouterr().out
    assert "ai-mistakes/no-placeholder-values" in out


def test_doctor(monkeypatch, capsys):
    async def no_docker():
        return False

    monkeypatch.setattr("codeproof.cli.is_docker_available", no_docker)
    monkeypatch.setattr("codeproof.cli.is_e2b_available", lambda: False)

    assert main(["doctor"]) == 0
    out = capsys.readouterr().out
    assert "Docker is not available" in out
    assert "No sandbox available" in out
