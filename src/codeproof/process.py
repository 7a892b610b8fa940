from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence


logger = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT_BYTES = 1_048_576
READ_CHUNK_BYTES = 65_536


@dataclass(frozen=True)
class ProcessResult:
    stdout: str
    stderr: str
    exit_code: int
    timed_out: bool = False
    output_limit_exceeded: bool = False


async def run_process(
    args: Sequence[str],
    *,
    timeout: float,
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
) -> ProcessResult:
    """Run a command, reading stdout and stderr incrementally.

    Each stream keeps at most ``max_output_bytes``. Going over the cap or
    over ``timeout`` seconds kills the process. Spawn failures (a missing
    executable, for instance) raise ``OSError`` to the caller.
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    stdout = bytearray()
    stderr = bytearray()
    limit_hit = False

    async def pump(stream: asyncio.StreamReader, buffer: bytearray) -> None:
        nonlocal limit_hit
        while True:
            chunk = await stream.read(READ_CHUNK_BYTES)
            if not chunk:
                return
            room = max_output_bytes - len(buffer)
            if len(chunk) > room:
                buffer.extend(chunk[: max(room, 0)])
                limit_hit = True
                _kill(process)
                return
            buffer.extend(chunk)

    tasks = [
        asyncio.create_task(pump(process.stdout, stdout)),
        asyncio.create_task(pump(process.stderr, stderr)),
        asyncio.create_task(process.wait()),
    ]
    timed_out = False
    try:
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            timed_out = True
            logger.debug("Process %s timed out after %ss", args[0], timeout)
        for task in done:
            task.result()
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if process.returncode is None:
            _kill(process)
            await process.wait()

    return ProcessResult(
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        exit_code=process.returncode if process.returncode is not None else -1,
        timed_out=timed_out,
        output_limit_exceeded=limit_hit,
    )


def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        pass


def _decode(data: bytearray) -> str:
    return bytes(data).decode("utf-8", errors="replace")
