from __future__ import annotations

import time
from abc import ABC, abstractmethod

from codeproof.models import ExecutionResult, SandboxRunOptions


class SandboxUnavailableError(RuntimeError):
    pass


class SandboxProvider(ABC):
    name: str

    @abstractmethod
    async def run(self, options: SandboxRunOptions) -> ExecutionResult:
        raise NotImplementedError

    async def cleanup(self) -> None:
        """Release provider-held resources. Must be idempotent and never raise."""
        return None


def elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def failed_result(
    error: str,
    *,
    stderr: str = "",
    stdout: str = "",
    exit_code: int = 1,
    duration_ms: int = 0,
    timed_out: bool = False,
    output_limit_exceeded: bool = False,
) -> ExecutionResult:
    return ExecutionResult(
        success=False,
        stdout=stdout,
        stderr=stderr,
        exit_code=exit_code,
        duration_ms=duration_ms,
        error=error,
        timed_out=timed_out,
        output_limit_exceeded=output_limit_exceeded,
    )
