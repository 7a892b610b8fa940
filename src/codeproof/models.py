from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


LANGUAGES = ("python", "javascript", "typescript", "go", "rust")
EXECUTABLE_LANGUAGES = frozenset({"python", "javascript", "typescript"})
UNKNOWN_LANGUAGE = "unknown"

LANGUAGE_ALIASES = {
    "py": "python",
    "python": "python",
    "python3": "python",
    "js": "javascript",
    "javascript": "javascript",
    "node": "javascript",
    "ts": "typescript",
    "typescript": "typescript",
    "go": "go",
    "golang": "go",
    "rust": "rust",
    "rs": "rust",
}

SEVERITIES = ("error", "warning", "info")
ISSUE_SOURCES = ("execution", "syntax", "rule", "timeout")


def resolve_language(value: str | None) -> str | None:
    if not value:
        return None
    return LANGUAGE_ALIASES.get(value.strip().lower())


@dataclass(frozen=True)
class CodeBlock:
    language: str
    code: str
    start_line: int | None = None
    end_line: int | None = None


@dataclass(frozen=True)
class RuleMatch:
    message: str | None = None
    line: int | None = None
    suggestion: str | None = None


@dataclass(frozen=True)
class Issue:
    source: str
    severity: str
    message: str
    rule_id: str | None = None
    line: int | None = None
    suggestion: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExecutionResult:
    success: bool
    stdout: str
    stderr: str
    exit_code: int
    duration_ms: int
    error: str | None = None
    timed_out: bool = False
    output_limit_exceeded: bool = False


@dataclass(frozen=True)
class ContainerLimits:
    memory: str = "256m"
    cpus: float = 0.5
    pids_limit: int = 64
    tmpfs_size: str = "64m"
    max_output_bytes: int = 1_048_576


@dataclass(frozen=True)
class SandboxRunOptions:
    code: str
    language: str
    install: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)
    timeout: float = 30


@dataclass(frozen=True)
class CodeBlockResult:
    block: CodeBlock
    passed: bool
    issues: tuple[Issue, ...]
    execution: ExecutionResult | None = None


@dataclass(frozen=True)
class VerifyStats:
    total_blocks: int
    passed_blocks: int
    failed_blocks: int
    rules_checked: int
    duration_ms: int
    sandbox_provider: str | None = None


@dataclass(frozen=True)
class VerifyResult:
    passed: bool
    issues: tuple[Issue, ...]
    blocks: tuple[CodeBlockResult, ...]
    stats: VerifyStats

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VerifyOptions:
    code: str | None = None
    text: str | None = None
    file: str | None = None
    language: str | None = None
    sandbox: str | bool = "auto"
    # "all" | set name | list of Rule | False
    rules: Any = "all"
    install: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)
    timeout: float = 30
    limits: ContainerLimits = field(default_factory=ContainerLimits)


@dataclass(frozen=True)
class AppConfig:
    sandbox: str = "auto"
    rules: str = "all"
    rules_path: str | None = None
    install: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)
    timeout: float = 30
    limits: ContainerLimits = field(default_factory=ContainerLimits)
