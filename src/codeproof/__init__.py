from __future__ import annotations

from codeproof.extract import InputError, extract_code_blocks
from codeproof.models import (
    CodeBlock,
    CodeBlockResult,
    ContainerLimits,
    ExecutionResult,
    Issue,
    RuleMatch,
    VerifyOptions,
    VerifyResult,
    VerifyStats,
)
from codeproof.pipeline import verify, verify_sync
from codeproof.reporting import format_json, format_result, format_summary
from codeproof.rules import ALL_RULES, RULE_SETS, Rule, RuleDefinitionError, resolve_rules, run_rules
from codeproof.sandbox import SandboxProvider, SandboxUnavailableError, detect_sandbox
from codeproof.syntax import check_syntax

__version__ = "0.1.0"

__all__ = [
    "ALL_RULES",
    "RULE_SETS",
    "CodeBlock",
    "CodeBlockResult",
    "ContainerLimits",
    "ExecutionResult",
    "InputError",
    "Issue",
    "Rule",
    "RuleDefinitionError",
    "RuleMatch",
    "SandboxProvider",
    "SandboxUnavailableError",
    "VerifyOptions",
    "VerifyResult",
    "VerifyStats",
    "check_syntax",
    "detect_sandbox",
    "extract_code_blocks",
    "format_json",
    "format_result",
    "format_summary",
    "resolve_rules",
    "run_rules",
    "verify",
    "verify_sync",
]
