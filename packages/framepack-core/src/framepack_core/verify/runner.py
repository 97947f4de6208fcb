"""Integrity verification runner.

Runs every check against every target of a package and aggregates the
results. For each target the checks run in order (structure, symbol_export,
signature, install_name); when the structure check fails, the remaining
checks for that target are reported as skipped.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import UTC, datetime

import structlog

from framepack_core.errors import VerificationError
from framepack_core.packager.models import MultiPlatformPackage
from framepack_core.toolchain.inspect import BinaryInspector
from framepack_core.verify.checks import (
    BaseCheck,
    InstallNameCheck,
    SignatureCheck,
    StructureCheck,
    SymbolExportCheck,
)
from framepack_core.verify.models import CheckName, CheckResult, CheckStatus, VerificationResult

logger = structlog.get_logger(__name__)


class IntegrityVerifier:
    """Orchestrates integrity check execution.

    Attributes:
        package: Package under verification
        expected_targets: Targets that must be present (default: manifest)
        required_symbols: Smoke-test routine and FFI contract

    Example:
        >>> verifier = IntegrityVerifier(
        ...     package,
        ...     BinaryInspector(),
        ...     required_symbols=["degsToRads"],
        ... )
        >>> result = verifier.run()
        >>> result.passed
        True
    """

    def __init__(
        self,
        package: MultiPlatformPackage,
        inspector: BinaryInspector,
        *,
        required_symbols: Sequence[str],
        expected_targets: Sequence[str] | None = None,
    ) -> None:
        """Initialize the verifier.

        Args:
            package: Package to verify
            inspector: Binary inspector used by the checks
            required_symbols: Routines every binary must export
            expected_targets: Targets that must each have one bundle
        """
        self.package = package
        self.inspector = inspector
        self.required_symbols = tuple(required_symbols)
        self.expected_targets = tuple(
            expected_targets if expected_targets is not None else package.identifiers
        )
        self._log = logger.bind(component="integrity_verifier")

    def run(self) -> VerificationResult:
        """Run every check for every expected target.

        Returns:
            VerificationResult with all check outcomes
        """
        start_time = time.monotonic()
        started_at = datetime.now(UTC)
        results: list[CheckResult] = []

        self._log.info(
            "verification_started",
            package=str(self.package.path),
            targets=list(self.expected_targets),
        )

        for target in self.expected_targets:
            results.extend(self._run_target(target))

        results.extend(self._orphans())

        finished_at = datetime.now(UTC)
        total_duration_ms = int((time.monotonic() - start_time) * 1000)
        overall_status = self._determine_overall_status(results)

        self._log.info(
            "verification_completed",
            overall_status=overall_status.value,
            total_duration_ms=total_duration_ms,
            passed=sum(1 for r in results if r.passed),
            failed=sum(1 for r in results if r.failed),
        )

        return VerificationResult(
            package=self.package.path,
            checks=results,
            overall_status=overall_status,
            started_at=started_at,
            finished_at=finished_at,
            total_duration_ms=total_duration_ms,
        )

    def _run_target(self, target: str) -> list[CheckResult]:
        structure = StructureCheck(self.package, target, self.inspector).run()
        results = [structure]

        checks = self._build_checks(target)
        if structure.failed:
            results.extend(
                CheckResult(
                    name=check.name,
                    target=target,
                    status=CheckStatus.SKIPPED,
                    message="Skipped: bundle structure is invalid",
                )
                for check in checks
            )
            return results

        results.extend(check.run() for check in checks)
        return results

    def _orphans(self) -> list[CheckResult]:
        """Bundles nobody asked for, whether listed in the manifest or only on disk."""
        expected = set(self.expected_targets)
        listed = set(self.package.identifiers)
        on_disk = {
            entry.name
            for entry in self.package.path.iterdir()
            if entry.is_dir() and not entry.name.startswith(".")
        }

        results = []
        for orphan in sorted((listed | on_disk) - expected):
            if orphan in listed:
                message = f"Package contains a bundle for unconfigured target '{orphan}'"
            else:
                message = f"Package directory '{orphan}' is not listed in the manifest"
            results.append(
                CheckResult(
                    name=CheckName.STRUCTURE.value,
                    target=orphan,
                    status=CheckStatus.FAILED,
                    message=message,
                )
            )
        return results

    def _build_checks(self, target: str) -> list[BaseCheck]:
        """Build the checks that need a structurally valid bundle."""
        return [
            SymbolExportCheck(
                self.package,
                target,
                self.inspector,
                required_symbols=self.required_symbols,
            ),
            SignatureCheck(self.package, target, self.inspector),
            InstallNameCheck(self.package, target, self.inspector),
        ]

    def _determine_overall_status(self, results: list[CheckResult]) -> CheckStatus:
        """Determine overall verification status from check results.

        Args:
            results: List of individual check results

        Returns:
            Overall status based on all results
        """
        if not results:
            return CheckStatus.SKIPPED

        if any(r.status == CheckStatus.ERROR for r in results):
            return CheckStatus.ERROR

        if any(r.status == CheckStatus.FAILED for r in results):
            return CheckStatus.FAILED

        if any(r.status == CheckStatus.WARNING for r in results):
            return CheckStatus.WARNING

        if all(r.status == CheckStatus.SKIPPED for r in results):
            return CheckStatus.SKIPPED

        return CheckStatus.PASSED


def raise_for_result(result: VerificationResult) -> None:
    """Raise VerificationError for the first failing check, if any.

    Raises:
        VerificationError: Naming the first failing check and its target.
    """
    failure = result.first_failure
    if failure is None:
        return
    raise VerificationError(
        failure.name,
        failure.target,
        detail=failure.message,
        missing_symbols=failure.details.get("missing_symbols"),
    )


def verify_package(
    package: MultiPlatformPackage,
    inspector: BinaryInspector,
    *,
    required_symbols: Sequence[str],
    expected_targets: Sequence[str] | None = None,
) -> VerificationResult:
    """Verify a package and fail on the first failing check.

    Convenience function that creates a verifier and executes checks.

    Args:
        package: Package to verify
        inspector: Binary inspector used by the checks
        required_symbols: Routines every binary must export
        expected_targets: Targets that must each have one bundle

    Returns:
        VerificationResult when every check passed

    Raises:
        VerificationError: Naming the first failing check and its target.

    Example:
        >>> verify_package(package, BinaryInspector(), required_symbols=["degsToRads"])
    """
    verifier = IntegrityVerifier(
        package,
        inspector,
        required_symbols=required_symbols,
        expected_targets=expected_targets,
    )
    result = verifier.run()
    raise_for_result(result)
    return result
