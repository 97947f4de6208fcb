"""Per-target native compilation.

Each (PlatformTarget, architecture) pair is configured, built, and installed
with CMake in its own directory under the build root:

    <build_dir>/<target identifier>/<arch>/build      CMake binary dir
    <build_dir>/<target identifier>/<arch>/install    install prefix

Shared output is always requested explicitly for dynamic linkage, and the
install name directory is set to ``@rpath`` so the library is relocatable
before the bundle assembler pins its final path.

Compilation tasks are independent and run in parallel. Any failure is fatal
to the whole run; after every task has finished, the first failure in
submission order is raised.
"""

from __future__ import annotations

import concurrent.futures
from collections.abc import Sequence
from pathlib import Path

import structlog

from framepack_core.builder.models import BuildArtifact
from framepack_core.errors import CompilationError
from framepack_core.schemas.pipeline_spec import Linkage, PipelineSpec
from framepack_core.schemas.platform_target import OSFamily, PlatformTarget
from framepack_core.source import SourceTree
from framepack_core.toolchain.inspect import RPATH_TOKEN, BinaryInspector
from framepack_core.toolchain.runner import ToolError
from framepack_core.toolchain.toolchain import Toolchain

logger = structlog.get_logger(__name__)


def library_filename(library: str, linkage: Linkage) -> str:
    """File name CMake installs for a library (``libh3.dylib``, ``libh3.a``)."""
    suffix = ".dylib" if linkage is Linkage.DYNAMIC else ".a"
    return f"lib{library}{suffix}"


class Compiler:
    """Builds the native library for each target architecture.

    Attributes:
        spec: Pipeline configuration.
        toolchain: Toolchain used to resolve SDKs and run CMake.

    Example:
        >>> compiler = Compiler(spec, Toolchain())
        >>> artifacts = compiler.compile_all(source_tree)
        >>> [a.architectures for a in artifacts["ios-arm64_x86_64-simulator"]]
        [('arm64',), ('x86_64',)]
    """

    def __init__(self, spec: PipelineSpec, toolchain: Toolchain) -> None:
        self.spec = spec
        self.toolchain = toolchain
        self.runner = toolchain.runner
        self.inspector = BinaryInspector(self.runner)
        self._log = logger.bind(component="compiler")

    def work_dir(self, target: PlatformTarget, arch: str) -> Path:
        """Isolated directory for one compilation task."""
        return self.spec.build_dir / target.identifier / arch

    def configure_args(
        self,
        target: PlatformTarget,
        arch: str,
        source: SourceTree,
        sdk_path: str,
    ) -> list[str]:
        """Build the CMake configure command line for one task.

        Args:
            target: Platform target.
            arch: Single architecture to build.
            source: Native source tree.
            sdk_path: Resolved SDK root for the target.

        Returns:
            Full ``cmake`` command line.
        """
        work = self.work_dir(target, arch)
        shared = "ON" if self.spec.linkage is Linkage.DYNAMIC else "OFF"

        args = [
            "cmake",
            "-S",
            str(source.path),
            "-B",
            str(work / "build"),
        ]
        if target.cmake_system_name != "Darwin":
            args.append(f"-DCMAKE_SYSTEM_NAME={target.cmake_system_name}")
        args += [
            f"-DCMAKE_OSX_ARCHITECTURES={arch}",
            f"-DCMAKE_OSX_SYSROOT={sdk_path}",
            f"-DCMAKE_INSTALL_PREFIX={work / 'install'}",
            f"-DCMAKE_BUILD_TYPE={self.spec.build_type}",
            f"-DBUILD_SHARED_LIBS={shared}",
            f"-DCMAKE_INSTALL_NAME_DIR={RPATH_TOKEN}",
        ]
        if target.os_family is OSFamily.MACCATALYST:
            triple = f"{arch}-apple-ios{target.min_os_version}-macabi"
            args.append(f"-DCMAKE_C_FLAGS=-target {triple}")
            args.append(f"-DCMAKE_CXX_FLAGS=-target {triple}")
        else:
            args.append(f"-DCMAKE_OSX_DEPLOYMENT_TARGET={target.min_os_version}")

        args += list(self.spec.source.cmake_args)
        return args

    def compile(
        self,
        target: PlatformTarget,
        arch: str,
        source: SourceTree,
        *,
        sdk_path: str | None = None,
    ) -> BuildArtifact:
        """Compile and install the library for one architecture of a target.

        Args:
            target: Platform target.
            arch: Architecture to build (must belong to the target).
            source: Native source tree.
            sdk_path: Pre-resolved SDK root (resolved via xcrun when None).

        Returns:
            Single-architecture BuildArtifact.

        Raises:
            CompilationError: If any build step fails or produces no library.
        """
        if arch not in target.architectures:
            raise ValueError(f"Architecture '{arch}' is not part of target {target.identifier}")

        log = self._log.bind(target=target.identifier, arch=arch)
        work = self.work_dir(target, arch)
        work.mkdir(parents=True, exist_ok=True)
        sdk = sdk_path or self.toolchain.sdk_path(target.sdk)

        log.info("compile_started", build_type=self.spec.build_type, linkage=self.spec.linkage.value)

        build_dir = str(work / "build")
        steps = [
            self.configure_args(target, arch, source, sdk),
            [
                "cmake",
                "--build",
                build_dir,
                "--config",
                self.spec.build_type,
                "--parallel",
            ],
            ["cmake", "--install", build_dir, "--config", self.spec.build_type],
        ]
        for command in steps:
            try:
                self.runner.run(command, cwd=work)
            except ToolError as e:
                log.error("compile_failed", command=command[1], returncode=e.returncode)
                raise CompilationError(target.identifier, e.diagnostic, architecture=arch) from e

        artifact = self._collect(target, arch, work / "install")
        log.info("compile_completed", path=str(artifact.path), install_name=artifact.install_name)
        return artifact

    def compile_all(
        self,
        source: SourceTree,
        targets: Sequence[PlatformTarget] | None = None,
    ) -> dict[str, list[BuildArtifact]]:
        """Compile every architecture of every target in parallel.

        Args:
            source: Native source tree.
            targets: Targets to compile (default: all configured targets).

        Returns:
            Mapping of target identifier to its single-architecture
            artifacts, in sorted architecture order.

        Raises:
            CompilationError: First failure in submission order, after all
                tasks have finished.
        """
        targets = list(targets if targets is not None else self.spec.targets)
        tasks = [(t, arch) for t in targets for arch in t.sorted_architectures]
        if not tasks:
            return {}

        # SDK lookups go through xcrun once per SDK, before the fan-out
        sdk_paths = {t.sdk: self.toolchain.sdk_path(t.sdk) for t in targets}
        workers = self.spec.jobs or len(tasks)
        self._log.info("compile_fanout_started", tasks=len(tasks), workers=workers)

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=workers,
            thread_name_prefix="framepack-compile",
        ) as executor:
            futures = [
                executor.submit(self.compile, t, arch, source, sdk_path=sdk_paths[t.sdk])
                for t, arch in tasks
            ]
            concurrent.futures.wait(futures)

        failures = [f.exception() for f in futures if f.exception() is not None]
        if failures:
            self._log.error(
                "compile_fanout_failed",
                failed=len(failures),
                total=len(tasks),
            )
            first = failures[0]
            assert first is not None  # Type narrowing for mypy
            raise first

        results: dict[str, list[BuildArtifact]] = {t.identifier: [] for t in targets}
        for future in futures:
            artifact = future.result()
            results[artifact.target_id].append(artifact)

        self._log.info("compile_fanout_completed", tasks=len(tasks))
        return results

    def _collect(self, target: PlatformTarget, arch: str, prefix: Path) -> BuildArtifact:
        """Locate the installed library and headers under an install prefix."""
        filename = library_filename(self.spec.library, self.spec.linkage)
        library = prefix / "lib" / filename
        if not library.exists():
            raise CompilationError(
                target.identifier,
                f"expected {filename} under {prefix / 'lib'}",
                architecture=arch,
                user_message=(
                    f"Compilation for target '{target.identifier}' ({arch}) "
                    f"produced no {filename}"
                ),
            )
        # Versioned dylibs are installed as symlink chains
        library = library.resolve()

        headers = prefix / "include"
        if not headers.is_dir():
            raise CompilationError(
                target.identifier,
                f"expected public headers under {headers}",
                architecture=arch,
                user_message=(
                    f"Compilation for target '{target.identifier}' ({arch}) installed no headers"
                ),
            )

        install_name: str | None = None
        if self.spec.linkage is Linkage.DYNAMIC:
            try:
                names = self.inspector.install_names(library)
            except ToolError as e:
                raise CompilationError(target.identifier, e.diagnostic, architecture=arch) from e
            install_name = names[0] if names else None

        return BuildArtifact(
            target=target,
            path=library,
            architectures=(arch,),
            install_name=install_name,
            linkage=self.spec.linkage,
            headers_dir=headers,
        )
