"""Interface shared by the runners that execute FSL inside a container."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping, Sequence


class ExecutionEngine(ABC):
    """Launch one FSL/HCP command inside a container image.

    :class:`~dcreg.tools.fsl.FslBackend` uses an engine whenever the
    configured runner is not ``native``. Paths in the command line are
    host paths; the engine must make them visible at the same location.
    """

    @abstractmethod
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
        """Run *args* in *image* and wait for it.

        Args:
            image: Image that provides FSL, e.g. ``fsl/fsl:6.0.7.5``.
            args: Tool name followed by its arguments.
            volumes: Host directory → container directory bind mounts.
            env: Extra environment, typically ``FSLOUTPUTTYPE``.
            entrypoint: Overrides the image entrypoint when given.
            workdir: Container directory relative paths resolve against.

        Returns:
            The tool's exit status (always 0; failures raise).

        Raises:
            subprocess.CalledProcessError: If the tool exits non-zero.
        """
