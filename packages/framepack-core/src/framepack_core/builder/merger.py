"""Universal binary merging.

Single-architecture artifacts of one target are combined into one
multi-architecture binary with ``lipo -create``. Before anything is written,
every input must export exactly the same symbol set.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import structlog

from framepack_core.builder.models import BuildArtifact, SliceManifest
from framepack_core.errors import ConsistencyError
from framepack_core.toolchain.inspect import BinaryInspector
from framepack_core.toolchain.runner import ToolError, ToolRunner

logger = structlog.get_logger(__name__)


class UniversalBinaryMerger:
    """Merges per-architecture artifacts into universal binaries.

    Attributes:
        runner: ToolRunner used for lipo.
        inspector: BinaryInspector used to compare symbol sets.
        work_dir: Root directory for merged outputs.
    """

    def __init__(self, runner: ToolRunner, *, work_dir: Path) -> None:
        self.runner = runner
        self.inspector = BinaryInspector(runner)
        self.work_dir = work_dir
        self._log = logger.bind(component="merger")

    def merge(self, artifacts: Sequence[BuildArtifact]) -> BuildArtifact:
        """Merge the artifacts of one target.

        A single artifact is returned unchanged.

        Args:
            artifacts: Single- or multi-architecture artifacts of one target.

        Returns:
            BuildArtifact containing every input architecture.

        Raises:
            ConsistencyError: If inputs belong to different targets, repeat an
                architecture, or export different symbol sets.
        """
        if not artifacts:
            raise ValueError("merge() requires at least one artifact")

        ordered = sorted(artifacts, key=lambda a: a.architectures)
        target = ordered[0].target
        target_id = target.identifier
        log = self._log.bind(target=target_id)

        foreign = sorted({a.target_id for a in ordered if a.target_id != target_id})
        if foreign:
            raise ConsistencyError(
                target_id,
                f"inputs belong to other targets: {', '.join(foreign)}",
            )

        archs = [arch for a in ordered for arch in a.architectures]
        if len(set(archs)) != len(archs):
            raise ConsistencyError(target_id, f"duplicate architectures in inputs: {archs}")

        if len(ordered) == 1:
            log.debug("merge_skipped", reason="single artifact", architectures=archs)
            return ordered[0]

        self._check_symbol_consistency(target_id, ordered)

        output = self.work_dir / target_id / "universal" / ordered[0].path.name
        output.parent.mkdir(parents=True, exist_ok=True)
        if output.exists():
            output.unlink()

        command = ["lipo", "-create", *(str(a.path) for a in ordered), "-output", str(output)]
        try:
            self.runner.run(command)
            merged_archs = self.inspector.architectures(output)
        except ToolError as e:
            raise ConsistencyError(
                target_id,
                "lipo could not combine the architecture slices",
                internal_details=e.diagnostic,
            ) from e

        expected = tuple(sorted(archs))
        if merged_archs != expected:
            raise ConsistencyError(
                target_id,
                f"universal binary has slices {list(merged_archs)}, expected {list(expected)}",
            )

        log.info("slice_merged", architectures=list(expected), path=str(output))
        return BuildArtifact(
            target=target,
            path=output,
            architectures=expected,
            install_name=ordered[0].install_name,
            linkage=ordered[0].linkage,
            headers_dir=ordered[0].headers_dir,
        )

    def manifest(self, artifact: BuildArtifact) -> SliceManifest:
        """Slice manifest of a (merged) artifact."""
        return SliceManifest.from_binary(artifact.target_id, artifact.path, self.inspector)

    def _check_symbol_consistency(
        self,
        target_id: str,
        artifacts: Sequence[BuildArtifact],
    ) -> None:
        """Raise ConsistencyError unless every input exports the same symbols."""
        try:
            exported = [
                (a.architectures, self.inspector.exported_symbols(a.path)) for a in artifacts
            ]
        except ToolError as e:
            raise ConsistencyError(
                target_id,
                "could not read exported symbols",
                internal_details=e.diagnostic,
            ) from e

        reference_archs, reference = exported[0]
        differences: dict[str, list[str]] = {}
        for archs, symbols in exported[1:]:
            extra = sorted(symbols - reference)
            missing = sorted(reference - symbols)
            if extra or missing:
                key = "_".join(archs)
                differences[key] = [f"+{s}" for s in extra] + [f"-{s}" for s in missing]

        if differences:
            ref_key = "_".join(reference_archs)
            summary = "; ".join(f"{arch}: {', '.join(diff)}" for arch, diff in differences.items())
            self._log.error(
                "symbol_mismatch",
                target=target_id,
                reference=ref_key,
                differences=differences,
            )
            raise ConsistencyError(
                target_id,
                f"exported symbols differ from {ref_key} ({summary})",
                differences=differences,
            )
