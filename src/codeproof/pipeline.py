from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Any, Sequence

from codeproof.extract import resolve_input
from codeproof.models import (
    EXECUTABLE_LANGUAGES,
    CodeBlock,
    CodeBlockResult,
    ExecutionResult,
    Issue,
    SandboxRunOptions,
    VerifyOptions,
    VerifyResult,
    VerifyStats,
)
from codeproof.rules import Rule, resolve_rules, run_rules
from codeproof.sandbox import SANDBOX_CHOICES, SandboxProvider, detect_sandbox
from codeproof.syntax import check_syntax


logger = logging.getLogger(__name__)

PYTHON_ERROR_LINE = re.compile(r"^[A-Z]\w*Error:")


async def verify(options: VerifyOptions | None = None, **kwargs: Any) -> VerifyResult:
    """Verify code blocks with syntax heuristics, rules and (when available) a sandbox.

    Either pass a ``VerifyOptions`` or its fields as keyword arguments.
    """
    if options is None:
        options = VerifyOptions(**kwargs)
    elif kwargs:
        raise TypeError("Pass either a VerifyOptions instance or keyword arguments, not both")

    started = time.monotonic()
    sandbox_preference = normalize_sandbox(options.sandbox)
    blocks = resolve_input(options)
    if not blocks:
        return _empty_result(started)

    rules = resolve_rules(options.rules)
    sandbox = await _detect(sandbox_preference, options)

    try:
        tasks = [
            asyncio.ensure_future(verify_block(block, rules, sandbox, options))
            for block in blocks
        ]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
    finally:
        if sandbox is not None:
            await _teardown(sandbox)

    return aggregate(results, rules_checked=len(rules), sandbox=sandbox, started=started)


def verify_sync(options: VerifyOptions | None = None, **kwargs: Any) -> VerifyResult:
    return asyncio.run(verify(options, **kwargs))


def normalize_sandbox(value: Any) -> str | None:
    if value is None or value is True:
        return "auto"
    if value is False:
        return None

    choice = str(value).strip().lower()
    if choice not in SANDBOX_CHOICES:
        raise ValueError(f"sandbox must be one of: {', '.join(SANDBOX_CHOICES)}")
    if choice == "none":
        return None
    return choice


async def verify_block(
    block: CodeBlock,
    rules: Sequence[Rule],
    sandbox: SandboxProvider | None,
    options: VerifyOptions,
) -> CodeBlockResult:
    issues = check_syntax(block.code, block.language)
    issues.extend(run_rules(block.code, block.language, rules))

    execution: ExecutionResult | None = None
    if sandbox is not None and block.language in EXECUTABLE_LANGUAGES:
        execution = await sandbox.run(
            SandboxRunOptions(
                code=block.code,
                language=block.language,
                install=tuple(options.install),
                env=dict(options.env),
                timeout=options.timeout,
            )
        )
        issues.extend(execution_issues(execution, block.language))

    return CodeBlockResult(
        block=block,
        passed=not any(issue.severity == "error" for issue in issues),
        issues=tuple(issues),
        execution=execution,
    )


def execution_issues(execution: ExecutionResult, language: str) -> list[Issue]:
    if execution.success:
        return []

    error = execution.error or "Code execution failed"
    issues = [
        Issue(
            source="timeout" if execution.timed_out else "execution",
            severity="error",
            message=error,
        )
    ]

    stderr = execution.stderr.strip()
    if stderr and stderr != error.strip():
        issues.append(
            Issue(
                source="execution",
                severity="info",
                message=extract_error_line(stderr, language),
            )
        )
    return issues


def extract_error_line(stderr: str, language: str) -> str:
    lines = [line.strip() for line in stderr.split("\n") if line.strip()]
    if not lines:
        return stderr.strip()

    if language == "python":
        for line in lines:
            if PYTHON_ERROR_LINE.search(line):
                return line

    if language in {"javascript", "typescript"}:
        for line in lines:
            if "Error:" in line and not line.startswith("at "):
                return line

    return lines[-1]


def aggregate(
    results: Sequence[CodeBlockResult],
    *,
    rules_checked: int,
    sandbox: SandboxProvider | None,
    started: float,
) -> VerifyResult:
    passed_blocks = sum(1 for result in results if result.passed)
    stats = VerifyStats(
        total_blocks=len(results),
        passed_blocks=passed_blocks,
        failed_blocks=len(results) - passed_blocks,
        rules_checked=rules_checked,
        duration_ms=_elapsed_ms(started),
        sandbox_provider=sandbox.name if sandbox is not None else None,
    )
    return VerifyResult(
        passed=passed_blocks == len(results),
        issues=tuple(issue for result in results for issue in result.issues),
        blocks=tuple(results),
        stats=stats,
    )


async def _detect(preference: str | None, options: VerifyOptions) -> SandboxProvider | None:
    if preference is None:
        return None
    try:
        sandbox = await detect_sandbox(preference, limits=options.limits)
    except Exception as exc:
        logger.warning("Sandbox detection failed, continuing without execution: %s", exc)
        return None

    logger.debug("Using sandbox provider: %s", sandbox.name if sandbox else "none")
    return sandbox


async def _teardown(sandbox: SandboxProvider) -> None:
    try:
        await sandbox.cleanup()
    except Exception as exc:
        logger.warning("Sandbox cleanup failed for %s: %s", sandbox.name, exc)


def _empty_result(started: float) -> VerifyResult:
    return VerifyResult(
        passed=True,
        issues=(),
        blocks=(),
        stats=VerifyStats(
            total_blocks=0,
            passed_blocks=0,
            failed_blocks=0,
            rules_checked=0,
            duration_ms=_elapsed_ms(started),
            sandbox_provider=None,
        ),
    )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
