from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from pathlib import Path

from codeproof.models import Issue, VerifyResult


SEVERITY_ICONS = {
    "error": "✗",
    "warning": "⚠",
    "info": "ℹ",
}

RULE_LINE = "─" * 33


def format_result(result: VerifyResult, verbose: bool = False) -> str:
    lines = [""]
    if result.passed:
        lines.append("  ✓ Verification passed")
    else:
        lines.append("  ✗ Verification failed")
    lines.append("")

    for index, block_result in enumerate(result.blocks, start=1):
        if block_result.passed and not verbose:
            continue

        language = block_result.block.language
        label = f"Block {index}" + (f" ({language})" if language != "unknown" else "")
        icon = "✓" if block_result.passed else "✗"
        lines.append(f"  {icon} {label}")

        for issue in block_result.issues:
            lines.extend(_format_issue(issue))

        execution = block_result.execution
        if execution is not None and verbose:
            if execution.stdout:
                lines.append(f"    stdout: {execution.stdout.splitlines()[0]}")
            lines.append(f"    executed in {execution.duration_ms}ms")

        lines.append("")

    stats = result.stats
    issue_count = len(result.issues)
    issue_summary = "no issues" if issue_count == 0 else f"{issue_count} issue{'' if issue_count == 1 else 's'}"

    lines.append(f"  {RULE_LINE}")
    lines.append(f"  Blocks: {stats.passed_blocks}/{stats.total_blocks} blocks passed")
    lines.append(f"  Issues: {issue_summary}")
    lines.append(f"  Sandbox: {stats.sandbox_provider or 'none'}")
    lines.append(f"  Time: {stats.duration_ms}ms")
    lines.append("")
    return "\n".join(lines)


def _format_issue(issue: Issue) -> list[str]:
    line_ref = f":{issue.line}" if issue.line else ""
    rule_ref = f" [{issue.rule_id}]" if issue.rule_id else ""
    lines = [f"    {SEVERITY_ICONS.get(issue.severity, '-')} {issue.message}{line_ref}{rule_ref}"]
    if issue.suggestion:
        lines.append(f"      → {issue.suggestion}")
    return lines


def format_json(result: VerifyResult) -> str:
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=True)


def format_summary(result: VerifyResult) -> str:
    stats = result.stats
    if result.passed:
        return f"✓ {stats.total_blocks} block(s) verified, no issues found"

    errors = sum(1 for issue in result.issues if issue.severity == "error")
    warnings = sum(1 for issue in result.issues if issue.severity == "warning")

    parts = []
    if errors:
        parts.append(f"{errors} error{'' if errors == 1 else 's'}")
    if warnings:
        parts.append(f"{warnings} warning{'' if warnings == 1 else 's'}")

    return f"✗ {stats.failed_blocks}/{stats.total_blocks} block(s) failed: {', '.join(parts)}"


def write_reports(result: VerifyResult, output_dir: str | Path) -> dict:
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    issue_rows = [
        {
            "block": index,
            "language": block_result.block.language,
            "block_start_line": block_result.block.start_line,
            **issue.to_dict(),
        }
        for index, block_result in enumerate(result.blocks, start=1)
        for issue in block_result.issues
    ]

    summary_json = out_dir / "verify_summary.json"
    issues_csv = out_dir / "issues.csv"

    summary = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "passed": result.passed,
        "summary": format_summary(result),
        "stats": {
            "total_blocks": result.stats.total_blocks,
            "passed_blocks": result.stats.passed_blocks,
            "failed_blocks": result.stats.failed_blocks,
            "rules_checked": result.stats.rules_checked,
            "duration_ms": result.stats.duration_ms,
            "sandbox_provider": result.stats.sandbox_provider,
        },
        "counts": {
            severity: sum(1 for issue in result.issues if issue.severity == severity)
            for severity in SEVERITY_ICONS
        },
        "files": {
            "verify_summary": str(summary_json.resolve()),
            "issues": str(issues_csv.resolve()),
        },
    }

    _write_json(summary_json, summary)
    _write_csv(issues_csv, issue_rows)
    return summary


def _write_json(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=True)


def _write_csv(path: Path, rows: list[dict]) -> None:
    with path.open("w", encoding="utf-8", newline="") as handle:
        if not rows:
            return

        writer = csv.DictWriter(handle, fieldnames=list(rows[0]))
        writer.writeheader()
        writer.writerows(rows)
