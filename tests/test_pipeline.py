import asyncio
import logging

import pytest

from codeproof.extract import InputError
from codeproof.models import ExecutionResult, VerifyOptions
from codeproof.pipeline import extract_error_line, verify, verify_sync
from codeproof.rules.base import Rule
from codeproof.sandbox import SandboxProvider, SandboxUnavailableError


class FakeSandbox(SandboxProvider):
    name = "fake"

    def __init__(self):
        self.calls = []
        self.cleanups = 0

    async def run(self, options):
        self.calls.append(options)
        if "boom" in options.code:
            await asyncio.sleep(0.05)
            return ExecutionResult(
                success=False,
                stdout="",
                stderr="Traceback (most recent call last):\nZeroDivisionError: division by zero",
                exit_code=1,
                duration_ms=50,
                error="Process exited with code 1",
            )
        if "sleep" in options.code:
            return ExecutionResult(
                success=False,
                stdout="",
                stderr="",
                exit_code=-9,
                duration_ms=1000,
                error="Execution timed out after 1s",
                timed_out=True,
            )
        return ExecutionResult(success=True, stdout="ok", stderr="", exit_code=0, duration_ms=5)

    async def cleanup(self):
        self.cleanups += 1


def _use_sandbox(monkeypatch, sandbox):
    async def fake_detect(preference=None, *, limits=None):
        return sandbox

    monkeypatch.setattr("codeproof.pipeline.detect_sandbox", fake_detect)


def _forbid_detection(monkeypatch):
    async def fake_detect(preference=None, *, limits=None):
        raise AssertionError("sandbox detection should not run")

    monkeypatch.setattr("codeproof.pipeline.detect_sandbox", fake_detect)


def test_zero_blocks_pass_without_detection(monkeypatch):
    _forbid_detection(monkeypatch)

    result = verify_sync(text="")

    assert result.passed is True
    assert result.issues == ()
    assert result.stats.total_blocks == 0
    assert result.stats.rules_checked == 0
    assert result.stats.sandbox_provider is None


def test_hardcoded_secret_fails_verification(monkeypatch):
    _forbid_detection(monkeypatch)

    result = verify_sync(
        code='api_key = "sk-1234567890abcdefghijklmnop"',
        language="python",
        sandbox=False,
        rules="security",
    )

    assert result.passed is False
    assert any(issue.rule_id == "security/no-hardcoded-secrets" for issue in result.issues)
    assert result.stats.failed_blocks == 1
    assert result.stats.rules_checked == 3


def test_mixed_blocks_keep_order_and_only_failing_block_has_execution_issue(monkeypatch):
    sandbox = FakeSandbox()
    _use_sandbox(monkeypatch, sandbox)
    text = "```python\nboom = 1 / 0\n```\n\n```python\nprint('fine')\n```\n"

    result = verify_sync(text=text, rules=False)

    first, second = result.blocks
    assert first.block.code == "boom = 1 / 0"
    assert first.passed is False
    assert [(i.source, i.severity, i.message) for i in first.issues] == [
        ("execution", "error", "Process exited with code 1"),
        ("execution", "info", "ZeroDivisionError: division by zero"),
    ]
    assert second.passed is True
    assert second.issues == ()
    assert second.execution.success is True

    assert result.passed is False
    assert result.stats.total_blocks == 2
    assert result.stats.passed_blocks == 1
    assert result.stats.failed_blocks == 1
    assert result.stats.sandbox_provider == "fake"
    assert sandbox.cleanups == 1


def test_timeout_becomes_timeout_issue(monkeypatch):
    _use_sandbox(monkeypatch, FakeSandbox())

    result = verify_sync(code="import time\ntime.sleep(60)", language="python", rules=False)

    assert [(i.source, i.severity) for i in result.issues] == [("timeout", "error")]
    assert result.blocks[0].execution.timed_out is True


def test_detection_failure_is_logged_and_skipped(monkeypatch, caplog):
    async def failing_detect(preference=None, *, limits=None):
        raise SandboxUnavailableError("Docker sandbox requested but Docker is not available.")

    monkeypatch.setattr("codeproof.pipeline.detect_sandbox", failing_detect)

    with caplog.at_level(logging.WARNING, logger="codeproof.pipeline"):
        result = verify_sync(code="print(1)", language="python", sandbox="docker", rules=False)

    assert result.passed is True
    assert result.stats.sandbox_provider is None
    assert result.blocks[0].execution is None
    assert "Docker is not available" in caplog.text


def test_non_executable_language_is_not_sent_to_sandbox(monkeypatch):
    sandbox = FakeSandbox()
    _use_sandbox(monkeypatch, sandbox)

    result = verify_sync(code="package main", language="go", rules=False)

    assert sandbox.calls == []
    assert result.blocks[0].execution is None
    assert result.stats.sandbox_provider == "fake"
    assert sandbox.cleanups == 1


def test_sandbox_disabled_skips_detection(monkeypatch):
    _forbid_detection(monkeypatch)

    assert verify_sync(code="print(1)", language="python", sandbox="none").stats.sandbox_provider is None
    assert verify_sync(code="print(1)", language="python", sandbox=False).stats.sandbox_provider is None


def test_run_options_are_forwarded(monkeypatch):
    sandbox = FakeSandbox()
    _use_sandbox(monkeypatch, sandbox)

    verify_sync(
        code="print(1)",
        language="python",
        rules=False,
        install=("requests",),
        env={"MODE": "test"},
        timeout=5,
    )

    (options,) = sandbox.calls
    assert options.install == ("requests",)
    assert options.env == {"MODE": "test"}
    assert options.timeout == 5
    assert options.language == "python"


def test_failing_rule_propagates_after_cleanup(monkeypatch):
    sandbox = FakeSandbox()
    _use_sandbox(monkeypatch, sandbox)

    def broken(code, language):
        raise RuntimeError("broken rule")

    rule = Rule(id="custom/broken", name="broken", message="m", severity="error", check=broken)

    with pytest.raises(RuntimeError, match="broken rule"):
        verify_sync(text="```python\nprint(1)\n```\n```js\nconsole.log(1)\n```\n", rules=[rule])

    assert sandbox.cleanups == 1


def test_same_input_gives_same_issues(monkeypatch):
    _forbid_detection(monkeypatch)
    options = VerifyOptions(code="import os\nfunction(\n", language="python", sandbox=False)

    assert verify_sync(options).issues == verify_sync(options).issues


def test_stats_invariants(monkeypatch):
    _use_sandbox(monkeypatch, FakeSandbox())
    text = "```python\nboom()\n```\n```python\nprint(1)\n```\n```rust\nfn main() {}\n```\n"

    result = verify_sync(text=text, rules=False)

    stats = result.stats
    assert stats.total_blocks == len(result.blocks) == 3
    assert stats.passed_blocks + stats.failed_blocks == stats.total_blocks
    assert result.passed == (stats.failed_blocks == 0)
    for block in result.blocks:
        assert block.passed == (not any(issue.severity == "error" for issue in block.issues))


def test_input_errors_raise():
    with pytest.raises(InputError):
        verify_sync()
    with pytest.raises(ValueError):
        verify_sync(code="x", sandbox="vm")


def test_options_and_keywords_are_exclusive():
    with pytest.raises(TypeError):
        asyncio.run(verify(VerifyOptions(code="x"), code="y"))


def test_extract_error_line():
    python_stderr = 'Traceback (most recent call last):\n  File "code.py", line 1\nNameError: name \'x\' is not defined\n'
    js_stderr = "/code/code.js:1\nthrow new Error('bad')\n\nError: bad\n    at Object.<anonymous> (/code/code.js:1:7)\n"

    assert extract_error_line(python_stderr, "python") == "NameError: name 'x' is not defined"
    assert extract_error_line(js_stderr, "javascript") == "Error: bad"
    assert extract_error_line("first\nlast line\n", "go") == "last line"
