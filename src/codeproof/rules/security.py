from __future__ import annotations

import re

from codeproof.models import RuleMatch
from codeproof.rules.base import Rule


SECRET_PATTERNS = [
    (
        re.compile(
            r"(?:api_key|apikey|api_secret|secret_key|auth_token)\s*[:=]\s*[\"'][A-Za-z0-9_\-/.]{16,}[\"']",
            re.IGNORECASE,
        ),
        "API key",
    ),
    (re.compile(r"(?:AKIA|ASIA)[A-Z0-9]{16}", re.IGNORECASE), "AWS access key"),
    (re.compile(r"\b(?:ghp|gho|ghu|ghs|ghr)_[A-Za-z0-9_]{30,}", re.IGNORECASE), "GitHub token"),
    (re.compile(r"\bsk-[A-Za-z0-9]{20,}", re.IGNORECASE), "OpenAI API key"),
    (re.compile(r"(?:password|passwd|pwd)\s*[:=]\s*[\"'][^\"']{8,}[\"']", re.IGNORECASE), "password"),
    (re.compile(r"[\"']Bearer\s+[A-Za-z0-9_\-/.]{20,}[\"']", re.IGNORECASE), "bearer token"),
    (re.compile(r"-----BEGIN (?:RSA |EC |DSA )?PRIVATE KEY-----", re.IGNORECASE), "private key"),
]

PYTHON_DANGEROUS = [
    (
        re.compile(r"\bos\.system\s*\("),
        "`os.system()` executes shell commands",
        "Use `subprocess.run()` with explicit arguments instead",
    ),
    (
        re.compile(r"\bexec\s*\("),
        "`exec()` executes arbitrary Python code",
        "Avoid `exec()` and refactor to use direct function calls",
    ),
    (
        re.compile(r"\bshutil\.rmtree\s*\("),
        "`shutil.rmtree()` recursively deletes directories",
        "Verify the path is correct and add safety checks",
    ),
]

JS_DANGEROUS = [
    (
        re.compile(r"\beval\s*\("),
        "`eval()` executes arbitrary JavaScript code",
        "Use `JSON.parse()` for data or a sandboxed evaluator",
    ),
    (
        re.compile(r"\bnew Function\s*\("),
        "`new Function()` creates functions from strings (like eval)",
        "Define functions directly instead of from strings",
    ),
]

EVAL_CALL = re.compile(r"\beval\s*\(")
LITERAL_EVAL = re.compile(r"\bast\.literal_eval\b")
CHILD_PROCESS = re.compile(r"\bchild_process\b")
EXEC_CALL = re.compile(r"\bexec\s*\(")
RM_RF = re.compile(r"rm\s+-rf\s+[/\"']")


def _check_hardcoded_secrets(code: str, language: str) -> list[RuleMatch]:
    matches: list[RuleMatch] = []
    for line_index, line in enumerate(code.split("\n"), start=1):
        trimmed = line.strip()
        if trimmed.startswith(("#", "//", "*")):
            continue

        for regex, secret_type in SECRET_PATTERNS:
            if regex.search(line):
                matches.append(
                    RuleMatch(
                        line=line_index,
                        message=f"Possible hardcoded {secret_type} detected",
                        suggestion=(
                            'Use environment variables: `os.environ["KEY"]` (Python) '
                            "or `process.env.KEY` (JS/TS)"
                        ),
                    )
                )
                break

    return matches


def _check_dangerous_operations(code: str, language: str) -> list[RuleMatch]:
    matches: list[RuleMatch] = []
    for line_index, line in enumerate(code.split("\n"), start=1):
        trimmed = line.strip()
        if trimmed.startswith(("#", "//")):
            continue

        if language == "python":
            if EVAL_CALL.search(line) and not LITERAL_EVAL.search(line):
                matches.append(
                    RuleMatch(
                        line=line_index,
                        message="`eval()` executes arbitrary Python code",
                        suggestion="Use `ast.literal_eval()` for safe evaluation of literals",
                    )
                )
            for regex, message, suggestion in PYTHON_DANGEROUS:
                if regex.search(line):
                    matches.append(RuleMatch(line=line_index, message=message, suggestion=suggestion))

        if language in {"javascript", "typescript"}:
            for regex, message, suggestion in JS_DANGEROUS:
                if regex.search(line):
                    matches.append(RuleMatch(line=line_index, message=message, suggestion=suggestion))
            if CHILD_PROCESS.search(line) and EXEC_CALL.search(line):
                matches.append(
                    RuleMatch(
                        line=line_index,
                        message="`child_process.exec()` runs shell commands",
                        suggestion="Use `child_process.execFile()` with explicit arguments",
                    )
                )

        if RM_RF.search(line):
            matches.append(
                RuleMatch(
                    line=line_index,
                    message="Recursive force delete detected",
                    suggestion="Verify the target path is correct and not a system directory",
                )
            )

    return matches


no_hardcoded_secrets = Rule(
    id="security/no-hardcoded-secrets",
    name="No hardcoded secrets",
    message="Possible hardcoded secret or API key detected",
    severity="error",
    suggestion="Use environment variables instead of hardcoding secrets",
    check=_check_hardcoded_secrets,
)

no_dangerous_operations = Rule(
    id="security/no-dangerous-operations",
    name="No dangerous operations",
    message="Potentially dangerous operation that could harm the system",
    severity="error",
    suggestion="Review this code carefully before execution",
    check=_check_dangerous_operations,
)

no_sql_injection = Rule(
    id="security/no-sql-injection",
    name="No SQL injection",
    message="Possible SQL injection via string concatenation",
    severity="warning",
    suggestion="Use parameterized queries instead of string concatenation",
    pattern=re.compile(
        r"(?:[\"'`]\s*\+\s*\w+\s*\+\s*[\"'`]|f[\"'].*\{.*\}.*(?:SELECT|INSERT|UPDATE|DELETE|DROP|WHERE))",
        re.IGNORECASE,
    ),
)

SECURITY_RULES = [
    no_hardcoded_secrets,
    no_dangerous_operations,
    no_sql_injection,
]
