from __future__ import annotations

import logging

from codeproof.models import ContainerLimits
from codeproof.sandbox.base import SandboxProvider, SandboxUnavailableError
from codeproof.sandbox.docker import DockerSandbox, is_docker_available, reset_docker_cache
from codeproof.sandbox.e2b import E2BSandbox, is_e2b_available


logger = logging.getLogger(__name__)

SANDBOX_CHOICES = ("auto", "none", "docker", "e2b")

DOCKER_UNAVAILABLE = (
    "Docker sandbox requested but Docker is not available. "
    "Install Docker: https://docs.docker.com/get-docker/"
)
E2B_UNAVAILABLE = (
    "E2B sandbox requested but not available. "
    "Install e2b-code-interpreter and set E2B_API_KEY."
)


async def detect_sandbox(
    preference: str | None = None,
    *,
    limits: ContainerLimits | None = None,
) -> SandboxProvider | None:
    choice = (preference or "auto").strip().lower()

    if choice == "docker":
        if await is_docker_available():
            return DockerSandbox(limits)
        raise SandboxUnavailableError(DOCKER_UNAVAILABLE)

    if choice == "e2b":
        if is_e2b_available():
            return E2BSandbox()
        raise SandboxUnavailableError(E2B_UNAVAILABLE)

    if choice != "auto":
        raise ValueError(f"Unsupported sandbox: {preference}")

    if await is_docker_available():
        return DockerSandbox(limits)
    if is_e2b_available():
        return E2BSandbox()

    logger.debug("No sandbox provider available")
    return None


__all__ = [
    "SANDBOX_CHOICES",
    "DockerSandbox",
    "E2BSandbox",
    "SandboxProvider",
    "SandboxUnavailableError",
    "detect_sandbox",
    "is_docker_available",
    "is_e2b_available",
    "reset_docker_cache",
]
