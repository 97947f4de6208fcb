"""Base class for integrity checks.

Abstract base class defining the interface for all package checks.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from framepack_core.packager.models import MultiPlatformPackage, PackageEntry
from framepack_core.toolchain.inspect import BinaryInspector
from framepack_core.verify.models import CheckResult, CheckStatus

logger = structlog.get_logger(__name__)


class BaseCheck(ABC):
    """Base class for integrity checks.

    A check inspects one target of a package. It provides common
    functionality for running with timing, error handling, and logging.

    Attributes:
        name: Check name for identification
        package: Package under verification
        target: Target identifier being checked
        inspector: Binary inspector for tool-backed checks

    Example:
        >>> class MyCheck(BaseCheck):
        ...     name = "my_check"
        ...     def _execute(self) -> CheckResult:
        ...         return self._make_result(CheckStatus.PASSED)
    """

    name: str = ""

    def __init__(
        self,
        package: MultiPlatformPackage,
        target: str,
        inspector: BinaryInspector,
    ) -> None:
        """Initialize the check.

        Args:
            package: Package under verification
            target: Target identifier to check
            inspector: Binary inspector for reading Mach-O facts
        """
        self.package = package
        self.target = target
        self.inspector = inspector
        self._log = logger.bind(check=self.name, target=target)

    @property
    def entry(self) -> PackageEntry:
        return self.package.entry_for(self.target)

    @property
    def binary(self) -> Path:
        return self.package.binary_for(self.target)

    def run(self) -> CheckResult:
        """Run the check with timing and error handling.

        Returns:
            CheckResult with status, message, and duration.
        """
        start_time = time.monotonic()
        timestamp = datetime.now(UTC)

        self._log.debug("check_started")

        try:
            result = self._execute()
            duration_ms = int((time.monotonic() - start_time) * 1000)

            # Update result with timing
            result_dict = result.model_dump()
            result_dict["duration_ms"] = duration_ms
            result_dict["timestamp"] = timestamp

            final_result = CheckResult(**result_dict)

            self._log.info(
                "check_completed",
                status=final_result.status.value,
                duration_ms=duration_ms,
            )

            return final_result

        except Exception as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            self._log.error("check_error", error=str(e))
            return CheckResult(
                name=self.name,
                target=self.target,
                status=CheckStatus.ERROR,
                message=f"Check failed with error: {type(e).__name__}: {e}",
                details={"error": str(e), "error_type": type(e).__name__},
                duration_ms=duration_ms,
                timestamp=timestamp,
            )

    @abstractmethod
    def _execute(self) -> CheckResult:
        """Execute the actual check logic.

        Returns:
            CheckResult with the check outcome.

        Raises:
            Any exception will be caught by run() and converted to ERROR status.
        """

    def _make_result(
        self,
        status: CheckStatus,
        message: str = "",
        details: dict[str, Any] | None = None,
    ) -> CheckResult:
        """Create a CheckResult with common fields.

        Args:
            status: Check status
            message: Human-readable message
            details: Additional details dict

        Returns:
            CheckResult with provided fields
        """
        return CheckResult(
            name=self.name,
            target=self.target,
            status=status,
            message=message,
            details=details or {},
        )
