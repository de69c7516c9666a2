from __future__ import annotations

import errno
import os
import pty
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Sequence

import structlog

log = structlog.get_logger()


def tool_path(name: str, fsldir: Path | None = None) -> str:
    """Return the executable for FSL tool *name*.

    Args:
        name: Tool name such as ``fugue`` or ``convertwarp``.
        fsldir: Optional FSL installation root. When given the tool is taken
            from ``<fsldir>/bin``; otherwise it is resolved on ``PATH``.

    Returns:
        Executable path or bare name.
    """
    if fsldir is None:
        return name
    return str(Path(fsldir) / "bin" / name)


def _check_executable(name: str) -> None:
    """Raise when *name* cannot be executed.

    Paths are checked directly; bare names are looked up on ``PATH``.
    """
    if os.sep not in name:
        if shutil.which(name) is None:
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), name)
        return
    if not Path(name).is_file():
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), name)
    if not os.access(name, os.X_OK):
        raise PermissionError(errno.EACCES, os.strerror(errno.EACCES), name)


def _write_stdout(chunk: bytes) -> None:
    try:
        os.write(sys.stdout.fileno(), chunk)
    except (OSError, ValueError):
        # No real file descriptor behind stdout (e.g. captured output).
        sys.stdout.write(chunk.decode("utf-8", errors="replace"))
    sys.stdout.flush()


def _relay(fd: int) -> None:
    """Copy everything the child writes to the PTY *fd* onto stdout."""
    while True:
        try:
            chunk = os.read(fd, 1024)
        except OSError as exc:
            # Linux reports EIO once the child has closed its side.
            if exc.errno == errno.EIO:
                return
            raise
        if not chunk:
            return
        _write_stdout(chunk)


def run_cmd(cmd: Sequence[str]) -> subprocess.CompletedProcess:
    """Execute an external command while preserving interactive output.

    The child writes to a pseudo-terminal so that FSL tools keep printing
    their progress; the output is relayed to stdout as it arrives.

    Args:
        cmd: Command vector passed to :class:`subprocess.Popen`.

    Returns:
        :class:`subprocess.CompletedProcess` describing the execution result.

    Raises:
        subprocess.CalledProcessError: If the command exits with a non-zero status.
        FileNotFoundError: If the executable cannot be found.
        PermissionError: If the executable exists but is not executable.
    """
    cmd = [str(c) for c in cmd]

    log.info("run-cmd", cmd=" ".join(cmd))
    _check_executable(cmd[0])

    master, slave = pty.openpty()
    try:
        with subprocess.Popen(cmd, stdout=slave, stderr=slave) as p:
            os.close(slave)
            slave = -1
            _relay(master)
            rc = p.wait()
    finally:
        if slave >= 0:
            os.close(slave)
        os.close(master)

    sys.stdout.write("\n")
    sys.stdout.flush()
    if rc != 0:
        raise subprocess.CalledProcessError(rc, cmd)
    return subprocess.CompletedProcess(cmd, rc)


__all__ = ["tool_path", "run_cmd"]
