"""Framework bundle assembly.

Turns one BuildArtifact into one FrameworkBundle:

    a. create the layout skeleton
    b. copy the binary to its canonical location
    c. rewrite the binary's install name to its ``@rpath`` bundle path
    d. copy the public headers
    e. write Info.plist
    f. create the version symlinks (versioned layout only)
    g. sign the binary

A failing step aborts that target's bundle with an AssemblyError naming the
target and the step. ``assemble_all`` keeps assembling the remaining targets
and then fails the run with the first error, carrying the others.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

from framepack_core.builder.models import BuildArtifact
from framepack_core.bundle.layout import BundleLayout, framework_dirname, layout_for
from framepack_core.bundle.metadata import build_info_plist, write_plist
from framepack_core.errors import AssemblyError
from framepack_core.schemas.pipeline_spec import Linkage, PipelineSpec
from framepack_core.schemas.platform_target import PlatformTarget
from framepack_core.toolchain.runner import ToolError, ToolRunner

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FrameworkBundle:
    """An assembled framework bundle for one target.

    Attributes:
        target: Platform target the bundle is for.
        layout: Layout describing where the bundle keeps its content.
    """

    target: PlatformTarget
    layout: BundleLayout

    @property
    def target_id(self) -> str:
        return self.target.identifier

    @property
    def root(self) -> Path:
        return self.layout.root

    @property
    def binary_path(self) -> Path:
        return self.layout.binary_path


class BundleAssembler:
    """Assembles framework bundles from build artifacts.

    Example:
        >>> assembler = BundleAssembler(spec, ToolRunner(), work_dir=Path("build/bundles"))
        >>> bundle = assembler.assemble(artifact)
        >>> bundle.layout.install_name
        '@rpath/h3.framework/h3'
    """

    def __init__(self, spec: PipelineSpec, runner: ToolRunner, *, work_dir: Path) -> None:
        self.spec = spec
        self.runner = runner
        self.work_dir = work_dir
        self.name = spec.effective_framework_name
        self._log = logger.bind(component="assembler")

    def bundle_root(self, target: PlatformTarget) -> Path:
        return self.work_dir / target.identifier / framework_dirname(self.name)

    def assemble(self, artifact: BuildArtifact) -> FrameworkBundle:
        """Assemble the bundle of one artifact.

        Args:
            artifact: Merged artifact of one target.

        Returns:
            FrameworkBundle on disk under the assembler's work directory.

        Raises:
            AssemblyError: Naming the target and the step that failed.
        """
        target = artifact.target
        root = self.bundle_root(target)
        layout = layout_for(target, root, self.name)
        log = self._log.bind(target=target.identifier, layout=layout.kind.value)

        steps: list[tuple[str, Callable[[], None]]] = [
            ("create_skeleton", lambda: self._create_skeleton(layout)),
            ("copy_binary", lambda: self._copy_binary(artifact, layout)),
            ("rewrite_self_reference", lambda: self._rewrite_self_reference(artifact, layout)),
            ("copy_headers", lambda: self._copy_headers(artifact, layout)),
            ("write_metadata", lambda: self._write_metadata(target, layout)),
            ("link_current_version", layout.link_current_version),
            ("sign", lambda: self._sign(layout)),
        ]

        log.info("bundle_assembly_started", root=str(root))
        for step, action in steps:
            try:
                action()
            except (ToolError, OSError) as e:
                details = e.diagnostic if isinstance(e, ToolError) else str(e)
                log.error("bundle_step_failed", step=step)
                raise AssemblyError(target.identifier, step, internal_details=details) from e
            log.debug("bundle_step_completed", step=step)

        log.info("bundle_assembled", binary=str(layout.binary_path))
        return FrameworkBundle(target=target, layout=layout)

    def assemble_all(self, artifacts: Sequence[BuildArtifact]) -> list[FrameworkBundle]:
        """Assemble every artifact, isolating failures per target.

        Args:
            artifacts: One merged artifact per target.

        Returns:
            Bundles in input order.

        Raises:
            AssemblyError: The first failure, with every other failure in
                ``related``, after all targets were attempted.
        """
        bundles: list[FrameworkBundle] = []
        failures: list[AssemblyError] = []

        for artifact in artifacts:
            try:
                bundles.append(self.assemble(artifact))
            except AssemblyError as e:
                failures.append(e)

        if failures:
            self._log.error(
                "bundle_assembly_failed",
                failed=[f"{f.target}:{f.step}" for f in failures],
                assembled=len(bundles),
            )
            first = failures[0]
            first.related = failures[1:]
            raise first

        return bundles

    def _create_skeleton(self, layout: BundleLayout) -> None:
        if layout.root.exists():
            shutil.rmtree(layout.root)
        layout.create_skeleton()

    def _copy_binary(self, artifact: BuildArtifact, layout: BundleLayout) -> None:
        shutil.copy2(artifact.path, layout.binary_path)

    def _rewrite_self_reference(self, artifact: BuildArtifact, layout: BundleLayout) -> None:
        if artifact.linkage is Linkage.STATIC:
            # Static archives carry no install name
            self._log.warning(
                "install_name_rewrite_skipped",
                target=artifact.target_id,
                reason="static archive",
            )
            return
        layout.rewrite_self_reference(self.runner)

    def _copy_headers(self, artifact: BuildArtifact, layout: BundleLayout) -> None:
        shutil.copytree(artifact.headers_dir, layout.headers_path, dirs_exist_ok=True)

    def _write_metadata(self, target: PlatformTarget, layout: BundleLayout) -> None:
        write_plist(layout.info_plist_path, build_info_plist(target, self.spec.metadata, self.name))

    def _sign(self, layout: BundleLayout) -> None:
        self.runner.run(
            [
                "codesign",
                "--force",
                "--sign",
                self.spec.signing_identity,
                "--timestamp=none",
                str(layout.binary_path),
            ]
        )
