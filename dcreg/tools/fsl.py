"""FSL/HCP backend used by the distortion-correction pipeline.

:class:`FslBackend` exposes one method per external operation the pipeline
needs (fieldmap preprocessing, unwarping, registration, warp conversion and
application, voxel-wise maths, image copies). Each method only assembles the
command line; execution goes either through
:func:`dcreg.utils.fsl.run_cmd` on the host or through an
:class:`~dcreg.engines.ExecutionEngine` when a container runner is
configured. An alternative imaging backend subclasses :class:`FslBackend` and
overrides the operations it implements differently.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Sequence

import structlog

from ..config.schema import DcregConfig
from ..engines import DockerEngine, ExecutionEngine
from ..utils import fsl

log = structlog.get_logger()

FIELDMAP_SCRIPT = "FieldMapPreprocessingAll.sh"


@dataclass
class ContainerCall:
    """One FSL invocation as handed to :meth:`ExecutionEngine.run`."""

    image: str
    args: Sequence[str]
    volumes: Mapping[str, str]
    env: Mapping[str, str]
    workdir: str | None = None


@dataclass
class FslTool:
    """An FSL or HCP command line bound to the image that provides it."""

    image: str
    command: Sequence[str]
    volumes: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)
    workdir: str | None = None

    def build_spec(self) -> ContainerCall:
        return ContainerCall(self.image, self.command, self.volumes, self.env, workdir=self.workdir)

    def execute(self, engine: ExecutionEngine) -> int:
        """Run the command through *engine* and return its exit status."""
        call = self.build_spec()
        return engine.run(
            call.image,
            call.args,
            volumes=call.volumes,
            env=call.env,
            workdir=call.workdir,
        )


def mounts_for(cmd: Sequence[str], cwd: Path) -> dict[str, str]:
    """Return host→guest mounts covering every absolute path in *cmd*.

    Both bare tokens and ``--flag=value`` tokens are inspected. Each path's
    parent directory (or the path itself for directories) is mounted at the
    identical location, and *cwd* is always mounted so that relative paths
    resolve the same way inside the container.
    """
    dirs: dict[str, str] = {str(cwd): str(cwd)}
    for token in cmd:
        token = str(token)
        value = token.split("=", 1)[1] if token.startswith("-") and "=" in token else token
        if not value.startswith("/"):
            continue
        path = Path(value)
        target = path if path.is_dir() else path.parent
        dirs.setdefault(str(target), str(target))
    return dirs


class FslBackend:
    """Issue the FSL and HCP commands that make up the pipeline.

    Args:
        cfg: Validated configuration.
        engine: Optional execution engine. Defaults to :class:`DockerEngine`
            when ``cfg.runner == "docker"`` and to host execution otherwise.
    """

    def __init__(self, cfg: DcregConfig, engine: ExecutionEngine | None = None) -> None:
        self.cfg = cfg
        if engine is None and cfg.runner == "docker":
            engine = DockerEngine(platform=cfg.platform)
        self.engine = engine

    # ------------------------------------------------------------------ #
    # Execution                                                          #
    # ------------------------------------------------------------------ #
    def tool(self, name: str) -> str:
        """Return the executable used for FSL tool *name*."""
        if self.engine is not None:
            # Container images put FSL on PATH.
            return name
        return fsl.tool_path(name, self.cfg.fsldir)

    def run(self, cmd: Sequence[str]) -> None:
        """Execute *cmd* with the configured runner.

        Raises:
            subprocess.CalledProcessError: If the command exits non-zero.
            FileNotFoundError: If the executable cannot be found.
        """
        cmd = [str(c) for c in cmd]
        if self.engine is None:
            fsl.run_cmd(cmd)
            return
        cwd = Path(os.getcwd())
        log.debug("fsl.container", image=self.cfg.image, tool=cmd[0])
        tool = FslTool(
            self.cfg.image,
            cmd,
            volumes=mounts_for(cmd, cwd),
            env={"FSLOUTPUTTYPE": "NIFTI_GZ"},
            workdir=str(cwd),
        )
        tool.execute(self.engine)

    # ------------------------------------------------------------------ #
    # Fieldmap preprocessing (HCP global script)                         #
    # ------------------------------------------------------------------ #
    def preprocess_fieldmap(
        self,
        *,
        global_scripts: Path,
        working_dir: Path,
        magnitude: Path,
        phase: Path,
        echo_diff: str,
        out_magnitude: Path,
        out_magnitude_brain: Path,
        out_phase: Path,
        out_fieldmap: Path,
        gd_coeffs: Path | None,
    ) -> None:
        """Turn magnitude/phase fieldmap acquisitions into a field map (rad/s)."""
        self.run(
            [
                Path(global_scripts) / FIELDMAP_SCRIPT,
                f"--workingdir={working_dir}",
                f"--fmapmag={magnitude}",
                f"--fmapphase={phase}",
                f"--echodiff={echo_diff}",
                f"--ofmapmag={out_magnitude}",
                f"--ofmapmagbrain={out_magnitude_brain}",
                f"--ophase={out_phase}",
                f"--ofmap={out_fieldmap}",
                f"--gdcoeffs={gd_coeffs or ''}",
            ]
        )

    # ------------------------------------------------------------------ #
    # fugue                                                              #
    # ------------------------------------------------------------------ #
    def forward_warp(
        self, image: Path, fieldmap: Path, *, dwell: str, unwarp_dir: str, out: Path
    ) -> None:
        """Forward-warp *image* with intensity correction using *fieldmap*."""
        self.run(
            [
                self.tool("fugue"),
                "-v",
                "-i",
                image,
                "--icorr",
                f"--unwarpdir={unwarp_dir}",
                f"--dwell={dwell}",
                f"--loadfmap={fieldmap}",
                "-w",
                out,
            ]
        )

    def fieldmap_to_shiftmap(self, fieldmap: Path, *, dwell: str, out: Path) -> None:
        """Convert *fieldmap* to a voxel shift map for dwell time *dwell*."""
        self.run(
            [
                self.tool("fugue"),
                f"--loadfmap={fieldmap}",
                f"--dwell={dwell}",
                f"--saveshift={out}",
            ]
        )

    # ------------------------------------------------------------------ #
    # flirt / epi_reg                                                    #
    # ------------------------------------------------------------------ #
    def rigid_register(self, moving: Path, fixed: Path, *, out: Path, out_matrix: Path) -> None:
        """Register *moving* to *fixed* with 6 degrees of freedom."""
        self.run(
            [
                self.tool("flirt"),
                "-dof",
                "6",
                "-in",
                moving,
                "-ref",
                fixed,
                "-out",
                out,
                "-omat",
                out_matrix,
            ]
        )

    def apply_affine(self, image: Path, reference: Path, *, matrix: Path, out: Path) -> None:
        """Resample *image* into *reference* space with affine *matrix*."""
        self.run(
            [
                self.tool("flirt"),
                "-in",
                image,
                "-ref",
                reference,
                "-applyxfm",
                "-init",
                matrix,
                "-out",
                out,
            ]
        )

    def cross_modal_register(
        self, moving_brain: Path, fixed: Path, fixed_brain: Path, *, out: Path
    ) -> None:
        """Boundary-based registration; writes ``<out>`` and ``<out>.mat``."""
        self.run(
            [
                self.tool("epi_reg"),
                f"--epi={moving_brain}",
                f"--t1={fixed}",
                f"--t1brain={fixed_brain}",
                f"--out={out}",
            ]
        )

    # ------------------------------------------------------------------ #
    # convertwarp / applywarp                                            #
    # ------------------------------------------------------------------ #
    def shiftmap_to_warp(
        self, shift_map: Path, reference: Path, *, shift_dir: str, out: Path
    ) -> None:
        """Turn a shift map into a relative deformation field."""
        self.run(
            [
                self.tool("convertwarp"),
                "--relout",
                "--rel",
                f"--ref={reference}",
                f"--shiftmap={shift_map}",
                f"--shiftdir={shift_dir}",
                f"--out={out}",
            ]
        )

    def compose_warp(self, reference: Path, warp: Path, *, postmat: Path, out: Path) -> None:
        """Chain deformation *warp* with the affine *postmat* into one field."""
        self.run(
            [
                self.tool("convertwarp"),
                "--relout",
                "--rel",
                f"--ref={reference}",
                f"--warp1={warp}",
                f"--postmat={postmat}",
                "-o",
                out,
            ]
        )

    def apply_warp(
        self, image: Path, reference: Path, *, warp: Path, out: Path, interp: str = "spline"
    ) -> None:
        """Resample *image* through the relative deformation field *warp*."""
        self.run(
            [
                self.tool("applywarp"),
                "--rel",
                f"--interp={interp}",
                "-i",
                image,
                "-r",
                reference,
                "-w",
                warp,
                "-o",
                out,
            ]
        )

    # ------------------------------------------------------------------ #
    # fslmaths / imcp                                                    #
    # ------------------------------------------------------------------ #
    def mask(self, image: Path, mask: Path, *, out: Path) -> None:
        """Zero *image* outside the non-zero voxels of *mask*."""
        self.run([self.tool("fslmaths"), image, "-mas", mask, out])

    def add_constant(self, image: Path, value: float | int, *, out: Path, odt: str = "float") -> None:
        """Add *value* to every voxel of *image*."""
        self.run([self.tool("fslmaths"), image, "-add", str(value), out, "-odt", odt])

    def geometric_mean(self, image: Path, other: Path, *, out: Path, odt: str = "float") -> None:
        """Write ``sqrt(image * other)``."""
        self.run([self.tool("fslmaths"), image, "-mul", other, "-sqrt", out, "-odt", odt])

    def copy_image(self, src: Path, dst: Path) -> None:
        """Copy an image, letting FSL resolve the on-disk extension."""
        self.run([self.tool("imcp"), src, dst])


__all__ = ["ContainerCall", "FslTool", "FslBackend", "FIELDMAP_SCRIPT", "mounts_for"]
