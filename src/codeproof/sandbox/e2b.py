from __future__ import annotations

import asyncio
import importlib.util
import logging
import os
import shlex
import time
from typing import Any, Awaitable, Callable

from codeproof.models import ExecutionResult, SandboxRunOptions
from codeproof.sandbox.base import (
    SandboxProvider,
    SandboxUnavailableError,
    elapsed_ms,
    failed_result,
)
from codeproof.sandbox.docker import strip_type_annotations


logger = logging.getLogger(__name__)

API_KEY_ENV = "E2B_API_KEY"
E2B_MODULE = "e2b_code_interpreter"
SESSION_TIMEOUT_SECONDS = 600
INSTALL_TIMEOUT_SECONDS = 300

E2B_LANGUAGES = {
    "python": "python",
    "javascript": "js",
    "typescript": "js",
}

INSTALL_COMMANDS = {
    "python": "pip install -q",
    "javascript": "npm install --silent",
    "typescript": "npm install --silent",
}

SessionFactory = Callable[[str], Awaitable[Any]]


def is_e2b_available() -> bool:
    if not os.environ.get(API_KEY_ENV, "").strip():
        return False
    return importlib.util.find_spec(E2B_MODULE) is not None


async def create_session(api_key: str) -> Any:
    from e2b_code_interpreter import AsyncSandbox

    return await AsyncSandbox.create(api_key=api_key, timeout=SESSION_TIMEOUT_SECONDS)


class E2BSandbox(SandboxProvider):
    name = "e2b"

    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory or create_session
        self._session: Any = None
        self._lock = asyncio.Lock()
        self._run_lock = asyncio.Lock()

    async def _get_session(self) -> Any:
        async with self._lock:
            if self._session is None:
                api_key = os.environ.get(API_KEY_ENV, "").strip()
                if not api_key:
                    raise SandboxUnavailableError(
                        f"{API_KEY_ENV} environment variable is required for the E2B sandbox. "
                        "Get a key at https://e2b.dev"
                    )
                logger.debug("Creating E2B session")
                self._session = await self._session_factory(api_key)
            return self._session

    async def run(self, options: SandboxRunOptions) -> ExecutionResult:
        run_language = E2B_LANGUAGES.get(options.language)
        if run_language is None:
            return failed_result(
                f"Unsupported language: {options.language}",
                stderr=f"E2B sandbox only supports Python and JavaScript/TypeScript. Got: {options.language}",
            )

        started = time.monotonic()
        try:
            session = await self._get_session()

            code = options.code
            if options.language == "typescript":
                code = strip_type_annotations(code)

            # One session serves every block; calls into it run one at a time.
            async with self._run_lock:
                if options.install:
                    packages = " ".join(shlex.quote(package) for package in options.install)
                    await session.commands.run(
                        f"{INSTALL_COMMANDS[options.language]} {packages}",
                        timeout=INSTALL_TIMEOUT_SECONDS,
                    )

                execution = await asyncio.wait_for(
                    session.run_code(
                        code,
                        language=run_language,
                        envs=dict(options.env) or None,
                        timeout=options.timeout,
                    ),
                    timeout=options.timeout + 10,
                )
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            timed_out = _is_timeout(exc)
            if timed_out:
                message = f"Execution timed out after {options.timeout:g}s"
            logger.debug("E2B execution failed: %s", message)
            return failed_result(
                message,
                stderr=message,
                duration_ms=elapsed_ms(started),
                timed_out=timed_out,
            )

        return _to_execution_result(execution, elapsed_ms(started))

    async def cleanup(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        try:
            await session.kill()
        except Exception as exc:
            logger.warning("Failed to stop E2B session: %s", exc)


def _to_execution_result(execution: Any, duration_ms: int) -> ExecutionResult:
    stdout = "".join(execution.logs.stdout).strip()
    if not stdout and execution.text:
        stdout = str(execution.text).strip()
    stderr = "".join(execution.logs.stderr).strip()

    error = execution.error
    if error is None:
        return ExecutionResult(
            success=True,
            stdout=stdout,
            stderr=stderr,
            exit_code=0,
            duration_ms=duration_ms,
        )

    message = f"{error.name}: {error.value}" if error.value else str(error.name)
    return failed_result(
        message,
        stdout=stdout,
        stderr=stderr or (error.traceback or "").strip(),
        duration_ms=duration_ms,
    )


def _is_timeout(exc: Exception) -> bool:
    # e2b raises its own TimeoutException.
    return isinstance(exc, asyncio.TimeoutError) or type(exc).__name__ == "TimeoutException"
