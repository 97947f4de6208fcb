"""Multi-platform packaging.

Pure aggregation: copies one bundle per configured target into a package
directory and writes the manifest. Nothing is recompiled or re-signed, and
nothing is skipped; every configured target must arrive with exactly one
bundle.
"""

from __future__ import annotations

import shutil
from collections import Counter
from collections.abc import Sequence
from pathlib import Path

import structlog

from framepack_core.bundle.assembler import FrameworkBundle
from framepack_core.bundle.metadata import write_plist
from framepack_core.errors import PackagingError
from framepack_core.packager.models import MultiPlatformPackage, PackageEntry
from framepack_core.schemas.pipeline_spec import PipelineSpec

logger = structlog.get_logger(__name__)


class MultiPlatformPackager:
    """Aggregates framework bundles into one MultiPlatformPackage.

    Attributes:
        spec: Pipeline configuration (defines the expected targets).
        staging_dir: Directory the package is written into.

    Example:
        >>> packager = MultiPlatformPackager(spec, staging_dir=Path("build"))
        >>> package = packager.package(bundles)
        >>> package.identifiers
        ('ios-arm64', 'ios-arm64_x86_64-simulator', 'macos-arm64_x86_64')
    """

    def __init__(self, spec: PipelineSpec, *, staging_dir: Path) -> None:
        self.spec = spec
        self.staging_dir = staging_dir
        self._log = logger.bind(component="packager")

    @property
    def package_path(self) -> Path:
        return self.staging_dir / self.spec.package_name

    def check_coverage(self, bundles: Sequence[FrameworkBundle]) -> None:
        """Ensure bundles and configured targets line up one-to-one.

        Raises:
            PackagingError: Listing missing, orphaned, and duplicated targets.
        """
        expected = list(self.spec.target_ids)
        counts = Counter(b.target_id for b in bundles)

        missing = [t for t in expected if counts[t] == 0]
        orphaned = sorted(t for t in counts if t not in expected)
        duplicated = sorted(t for t, n in counts.items() if n > 1)

        if not (missing or orphaned or duplicated):
            return

        problems: list[str] = []
        if missing:
            problems.append(f"missing bundle for {', '.join(missing)}")
        if orphaned:
            problems.append(f"bundle for unconfigured target {', '.join(orphaned)}")
        if duplicated:
            problems.append(f"more than one bundle for {', '.join(duplicated)}")

        self._log.error(
            "package_coverage_failed",
            missing=missing,
            orphaned=orphaned,
            duplicated=duplicated,
        )
        raise PackagingError(
            f"Cannot package: {'; '.join(problems)}",
            missing=missing,
            orphaned=orphaned,
            duplicated=duplicated,
        )

    def package(self, bundles: Sequence[FrameworkBundle]) -> MultiPlatformPackage:
        """Build the package directory.

        Args:
            bundles: Exactly one bundle per configured target.

        Returns:
            MultiPlatformPackage written under the staging directory.

        Raises:
            PackagingError: If bundles and targets do not line up, or a
                bundle cannot be copied.
        """
        self.check_coverage(bundles)

        by_target = {b.target_id: b for b in bundles}
        destination = self.package_path
        if destination.exists():
            shutil.rmtree(destination)
        destination.mkdir(parents=True)

        entries: list[PackageEntry] = []
        for target in self.spec.targets:
            bundle = by_target[target.identifier]
            layout = bundle.layout
            target_dir = destination / target.identifier
            try:
                shutil.copytree(bundle.root, target_dir / layout.bundle_dirname, symlinks=True)
            except OSError as e:
                raise PackagingError(
                    f"Failed to copy bundle for target '{target.identifier}'",
                    internal_details=str(e),
                ) from e

            entries.append(
                PackageEntry(
                    identifier=target.identifier,
                    library_path=layout.bundle_dirname,
                    binary_path=layout.relative_binary_path,
                    architectures=target.sorted_architectures,
                    platform=target.manifest_platform,
                    variant=target.platform_variant,
                )
            )
            self._log.debug("bundle_packaged", target=target.identifier)

        package = MultiPlatformPackage(
            path=destination,
            framework_name=self.spec.effective_framework_name,
            entries=tuple(entries),
        )
        write_plist(package.manifest_path, package.to_manifest())

        self._log.info("package_created", path=str(destination), targets=len(entries))
        return package
