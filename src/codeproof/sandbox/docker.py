from __future__ import annotations

import asyncio
import logging
import math
import os
import re
import shlex
import shutil
import tempfile
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from codeproof.models import ContainerLimits, ExecutionResult, SandboxRunOptions
from codeproof.process import ProcessResult, run_process
from codeproof.sandbox.base import SandboxProvider, elapsed_ms, failed_result


logger = logging.getLogger(__name__)

DOCKER_BIN_ENV = "CODEPROOF_DOCKER_BIN"
PROBE_TIMEOUT_SECONDS = 5
KILL_TIMEOUT_SECONDS = 10
WALL_CLOCK_GRACE_SECONDS = 10
PACKAGES_DIR = "/tmp/packages"


@dataclass(frozen=True)
class DockerImage:
    image: str
    command: str
    extension: str
    install: str
    package_env: tuple[tuple[str, str], ...] = ()


_NODE_IMAGE = DockerImage(
    image="node:20-slim",
    command="node",
    extension=".js",
    install=f"npm install --silent --prefix {PACKAGES_DIR}",
    package_env=(("NODE_PATH", f"{PACKAGES_DIR}/node_modules"), ("HOME", "/tmp")),
)

DOCKER_IMAGES = {
    "python": DockerImage(
        image="python:3.12-slim",
        command="python",
        extension=".py",
        install=f"pip install -q --target {PACKAGES_DIR}",
        package_env=(("PYTHONPATH", PACKAGES_DIR), ("HOME", "/tmp")),
    ),
    "javascript": _NODE_IMAGE,
    "typescript": _NODE_IMAGE,
}

TS_IMPORT_TYPE = re.compile(r"^import\s+type\s+.*$\n?", re.MULTILINE)
TS_TYPE_ALIAS = re.compile(r"^(?:export\s+)?type\s+\w+(?:<[^>\n]*>)?\s*=[^{\n]*;[ \t]*$\n?", re.MULTILINE)
TS_DECLARATION_BLOCK = re.compile(
    r"^(?:export\s+)?(?:interface|type)\s+\w+[\s\S]*?^\}[ \t]*;?[ \t]*$\n?", re.MULTILINE
)
TS_ANNOTATION = re.compile(
    r":\s*(?:string|number|boolean|any|void|never|unknown|null|undefined)(?:\[\])?\s*(?=[=,;)\n{])"
)
TS_ASSERTION = re.compile(r"\s+as\s+\w+(?:\[\])?")
IMPORT_OR_EXPORT_LINE = re.compile(r"^\s*(?:import|export\s*\{)")


def strip_type_annotations(code: str) -> str:
    """Best-effort removal of simple TypeScript syntax so the code runs under node."""
    code = TS_IMPORT_TYPE.sub("", code)
    code = TS_TYPE_ALIAS.sub("", code)
    code = TS_DECLARATION_BLOCK.sub("", code)
    code = TS_ANNOTATION.sub("", code)

    lines = []
    for line in code.split("\n"):
        # `import * as name` and `{ a as b }` are module syntax, not assertions.
        if not IMPORT_OR_EXPORT_LINE.search(line):
            line = TS_ASSERTION.sub("", line)
        lines.append(line)
    return "\n".join(lines)


def docker_binary() -> str:
    return os.environ.get(DOCKER_BIN_ENV, "").strip() or "docker"


class DockerAvailability:
    """Process-wide cache of the `docker info` probe."""

    def __init__(self) -> None:
        self._available: bool | None = None

    async def check(self) -> bool:
        if self._available is None:
            self._available = await _probe_docker()
            logger.debug("Docker availability: %s", self._available)
        return self._available

    def reset(self) -> None:
        self._available = None


_availability = DockerAvailability()


async def is_docker_available() -> bool:
    return await _availability.check()


def reset_docker_cache() -> None:
    _availability.reset()


async def _probe_docker() -> bool:
    try:
        result = await run_process([docker_binary(), "info"], timeout=PROBE_TIMEOUT_SECONDS)
    except OSError as exc:
        logger.debug("Docker probe failed: %s", exc)
        return False
    return result.exit_code == 0 and not result.timed_out


def build_inner_command(image: DockerImage, filename: str, install: tuple[str, ...] = ()) -> str:
    run = f"{image.command} {filename}"
    if not install:
        return run
    packages = " ".join(shlex.quote(package) for package in install)
    return f"{image.install} {packages} 2>/dev/null && {run}"


def build_docker_args(
    *,
    name: str,
    scratch_dir: str | Path,
    image: DockerImage,
    filename: str,
    options: SandboxRunOptions,
    limits: ContainerLimits,
    docker_bin: str = "docker",
) -> list[str]:
    args = [docker_bin, "run", "--rm", f"--name={name}"]
    if not options.install:
        args.append("--network=none")

    # Installed packages live on the tmpfs, so it must allow exec when installing.
    tmpfs_options = f"exec,size={limits.tmpfs_size}" if options.install else f"size={limits.tmpfs_size}"
    args.extend(
        [
            f"--memory={limits.memory}",
            f"--cpus={limits.cpus}",
            f"--pids-limit={limits.pids_limit}",
            "--read-only",
            f"--tmpfs=/tmp:{tmpfs_options}",
            "--security-opt=no-new-privileges",
            f"--stop-timeout={max(1, math.ceil(options.timeout))}",
            "-v",
            f"{scratch_dir}:/code:ro",
            "-w",
            "/code",
        ]
    )

    env: dict[str, str] = {}
    if options.install:
        env.update(image.package_env)
    env.update(options.env)
    for key, value in env.items():
        args.extend(["-e", f"{key}={value}"])

    args.extend([image.image, "sh", "-c", build_inner_command(image, filename, options.install)])
    return args


class DockerSandbox(SandboxProvider):
    name = "docker"

    def __init__(self, limits: ContainerLimits | None = None) -> None:
        self.limits = limits or ContainerLimits()

    async def run(self, options: SandboxRunOptions) -> ExecutionResult:
        image = DOCKER_IMAGES.get(options.language)
        if image is None:
            return failed_result(
                f"Docker sandbox does not support language: {options.language}",
                stderr=f"Unsupported language: {options.language}",
            )

        started = time.monotonic()
        docker_bin = docker_binary()
        name = f"codeproof-{uuid.uuid4().hex[:12]}"
        scratch_dir = Path(tempfile.mkdtemp(prefix="codeproof-"))

        try:
            code = options.code
            if options.language == "typescript":
                code = strip_type_annotations(code)
            filename = f"code{image.extension}"
            (scratch_dir / filename).write_text(code, encoding="utf-8")

            args = build_docker_args(
                name=name,
                scratch_dir=scratch_dir,
                image=image,
                filename=filename,
                options=options,
                limits=self.limits,
                docker_bin=docker_bin,
            )
            logger.debug("Starting container %s (%s)", name, image.image)

            try:
                result = await run_process(
                    args,
                    timeout=options.timeout + WALL_CLOCK_GRACE_SECONDS,
                    max_output_bytes=self.limits.max_output_bytes,
                )
            except OSError as exc:
                return failed_result(
                    f"Failed to start {docker_bin}: {exc}",
                    stderr=str(exc),
                    duration_ms=elapsed_ms(started),
                )
            except BaseException:
                # Killing the CLI client leaves the container running.
                await asyncio.shield(_kill_container(docker_bin, name))
                raise

            if result.timed_out or result.output_limit_exceeded:
                await _kill_container(docker_bin, name)

            return self._to_execution_result(result, options.timeout, elapsed_ms(started))
        finally:
            _remove_scratch_dir(scratch_dir)

    def _to_execution_result(self, result: ProcessResult, timeout: float, duration_ms: int) -> ExecutionResult:
        stdout = result.stdout.strip()
        stderr = result.stderr.strip()

        if result.timed_out:
            return failed_result(
                f"Execution timed out after {timeout:g}s",
                stdout=stdout,
                stderr=stderr,
                exit_code=result.exit_code,
                duration_ms=duration_ms,
                timed_out=True,
            )
        if result.output_limit_exceeded:
            return failed_result(
                f"Output limit exceeded ({self.limits.max_output_bytes} bytes)",
                stdout=stdout,
                stderr=stderr,
                exit_code=result.exit_code,
                duration_ms=duration_ms,
                output_limit_exceeded=True,
            )

        success = result.exit_code == 0
        return ExecutionResult(
            success=success,
            stdout=stdout,
            stderr=stderr,
            exit_code=result.exit_code,
            duration_ms=duration_ms,
            error=None if success else (stderr or f"Exit code {result.exit_code}"),
        )


async def _kill_container(docker_bin: str, name: str) -> None:
    try:
        result = await run_process([docker_bin, "kill", name], timeout=KILL_TIMEOUT_SECONDS)
    except OSError as exc:
        logger.debug("docker kill %s failed: %s", name, exc)
        return
    if result.exit_code != 0:
        logger.debug("docker kill %s exited with %s: %s", name, result.exit_code, result.stderr.strip())


def _remove_scratch_dir(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except OSError as exc:
        logger.warning("Failed to remove scratch directory %s: %s", path, exc)
