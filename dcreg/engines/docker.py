"""Docker execution engine."""

from __future__ import annotations

import subprocess
from typing import Mapping, Sequence

import structlog

from .base import ExecutionEngine

log = structlog.get_logger()


class DockerEngine(ExecutionEngine):
    """Run tools inside Docker containers."""

    def __init__(self, platform: str | None = None) -> None:
        """Configure the engine.

        Args:
            platform: Optional ``docker --platform`` value to request a
                specific architecture when pulling the image.
        """
        self.platform = platform

    def build_command(
        self,
        image: str,
        args: Sequence[str],
        *,
        volumes: Mapping[str, str],
        env: Mapping[str, str],
        entrypoint: str | None = None,
        workdir: str | None = None,
    ) -> list[str]:
        """Return the ``docker run`` command vector for the given spec."""
        cmd: list[str] = ["docker", "run", "--rm", "-t"]
        if self.platform:
            cmd += ["--platform", self.platform]
        for host, guest in volumes.items():
            cmd += ["-v", f"{host}:{guest}"]
        for key, value in env.items():
            cmd += ["-e", f"{key}={value}"]
        if entrypoint:
            cmd += ["--entrypoint", entrypoint]
        if workdir:
            cmd += ["-w", workdir]
        cmd.append(image)
        cmd.extend(str(a) for a in args)
        return cmd

    def run(
        self,
        image: str,
        args: Sequence[str],
        *,
        volumes: Mapping[str, str],
        env: Mapping[str, str],
        entrypoint: str | None = None,
        workdir: str | None = None,
    ) -> int:
        """Execute *image* while propagating mounts and environment data.

        Returns:
            ``0`` on success.

        Raises:
            subprocess.CalledProcessError: If Docker exits with a non-zero
                status; the caller attaches the pipeline stage.
        """
        cmd = self.build_command(
            image,
            args,
            volumes=volumes,
            env=env,
            entrypoint=entrypoint,
            workdir=workdir,
        )
        log.info("docker.run", image=image, args=list(args))
        try:
            subprocess.run(cmd, check=True)
        except subprocess.CalledProcessError as exc:
            log.error("docker.failed", image=image, returncode=exc.returncode)
            raise
        return 0
