"""Build-and-package pipeline orchestration.

Runs the stages in order, with the integrity verifier as the final gate:

    toolchain probe -> source acquisition -> compile (fan-out/fan-in)
    -> merge -> assemble -> package -> verify -> publish

The package is staged under the build directory and only replaces the
published copy in the output directory once every check has passed. A
failing verification deletes the staged package.
"""

from __future__ import annotations

import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from framepack_core.builder.compiler import Compiler
from framepack_core.builder.merger import UniversalBinaryMerger
from framepack_core.builder.models import BuildArtifact, SliceManifest
from framepack_core.bundle.assembler import BundleAssembler
from framepack_core.errors import FramepackError, VerificationError
from framepack_core.packager.models import MultiPlatformPackage
from framepack_core.packager.packager import MultiPlatformPackager
from framepack_core.schemas.pipeline_spec import PipelineSpec
from framepack_core.source import SourceAcquirer, SourceTree
from framepack_core.toolchain.inspect import BinaryInspector
from framepack_core.toolchain.toolchain import BUILD_TOOLS, SOURCE_TOOLS, Toolchain
from framepack_core.verify.models import VerificationResult
from framepack_core.verify.runner import IntegrityVerifier, raise_for_result

logger = structlog.get_logger(__name__)


@dataclass
class PipelineResult:
    """Outcome of a successful pipeline run.

    Attributes:
        package: Published package.
        source: Source tree that was built.
        manifests: Slice manifest per target identifier.
        verification: Integrity verification result.
        duration_ms: Total run time in milliseconds.
    """

    package: MultiPlatformPackage
    source: SourceTree
    manifests: dict[str, SliceManifest] = field(default_factory=dict)
    verification: VerificationResult | None = None
    duration_ms: int = 0

    def binary_sizes(self) -> dict[str, int]:
        """Size in bytes of each target's binary in the published package."""
        return {
            identifier: self.package.binary_for(identifier).stat().st_size
            for identifier in self.package.identifiers
        }


class Pipeline:
    """Runs the full build-and-package pipeline for one PipelineSpec.

    Example:
        >>> spec = PipelineSpec.from_yaml("framepack.yaml")
        >>> result = Pipeline(spec).run()
        >>> result.package.path
        PosixPath('.../darwin/Libs/h3.xcframework')
    """

    def __init__(self, spec: PipelineSpec, toolchain: Toolchain | None = None) -> None:
        self.spec = spec
        self.toolchain = toolchain or Toolchain()
        self.runner = self.toolchain.runner
        self.inspector = BinaryInspector(self.runner)
        self._log = logger.bind(component="pipeline", library=spec.library)

    @property
    def published_path(self) -> Path:
        return self.spec.output / self.spec.package_name

    def required_tools(self) -> tuple[str, ...]:
        tools = BUILD_TOOLS
        if SourceAcquirer(self.runner).needs_git(self.spec.source):
            tools = tools + SOURCE_TOOLS
        return tools

    def run(self, *, keep_build: bool = False) -> PipelineResult:
        """Run every stage and publish the verified package.

        Args:
            keep_build: Keep the build directory after the run.

        Returns:
            PipelineResult describing the published package.

        Raises:
            BuildEnvironmentError: Missing tools or source, before any build work.
            CompilationError: A target failed to compile.
            ConsistencyError: Architecture slices disagree.
            AssemblyError: A bundle could not be assembled.
            PackagingError: Bundles and targets do not line up.
            VerificationError: The finished package failed a check.
        """
        start = time.monotonic()
        build_dir = self.spec.build_dir
        self._log.info(
            "pipeline_started",
            targets=list(self.spec.target_ids),
            linkage=self.spec.linkage.value,
            build_dir=str(build_dir),
        )

        self.toolchain.require(*self.required_tools())

        try:
            result = self._run_stages()
        except FramepackError as e:
            self._log.error("pipeline_failed", error_type=type(e).__name__, error=e.user_message)
            raise
        finally:
            if not keep_build and build_dir.exists():
                shutil.rmtree(build_dir)
                self._log.debug("build_dir_removed", path=str(build_dir))

        result.duration_ms = int((time.monotonic() - start) * 1000)
        self._log.info(
            "pipeline_completed",
            package=str(result.package.path),
            duration_ms=result.duration_ms,
        )
        return result

    def _run_stages(self) -> PipelineResult:
        build_dir = self.spec.build_dir
        build_dir.mkdir(parents=True, exist_ok=True)

        source = SourceAcquirer(self.runner).ensure(self.spec.source)

        compiled = Compiler(self.spec, self.toolchain).compile_all(source)

        merger = UniversalBinaryMerger(self.runner, work_dir=build_dir)
        merged: list[BuildArtifact] = []
        manifests: dict[str, SliceManifest] = {}
        for target in self.spec.targets:
            artifact = merger.merge(compiled[target.identifier])
            merged.append(artifact)
            manifests[target.identifier] = merger.manifest(artifact)

        assembler = BundleAssembler(self.spec, self.runner, work_dir=build_dir / "bundles")
        bundles = assembler.assemble_all(merged)

        staged = MultiPlatformPackager(self.spec, staging_dir=build_dir / "package").package(
            bundles
        )

        verification = self._verify(staged)
        package = self._publish(staged)
        return PipelineResult(
            package=package,
            source=source,
            manifests=manifests,
            verification=verification,
        )

    def _verify(self, staged: MultiPlatformPackage) -> VerificationResult:
        verifier = IntegrityVerifier(
            staged,
            self.inspector,
            required_symbols=self.spec.required_symbols,
            expected_targets=self.spec.target_ids,
        )
        result = verifier.run()
        try:
            raise_for_result(result)
        except VerificationError:
            shutil.rmtree(staged.path, ignore_errors=True)
            self._log.error("staged_package_discarded", path=str(staged.path))
            raise
        return result

    def _publish(self, staged: MultiPlatformPackage) -> MultiPlatformPackage:
        destination = self.published_path
        destination.parent.mkdir(parents=True, exist_ok=True)
        if destination.exists():
            shutil.rmtree(destination)
        shutil.copytree(staged.path, destination, symlinks=True)
        self._log.info("package_published", path=str(destination))
        return MultiPlatformPackage.load(destination)
