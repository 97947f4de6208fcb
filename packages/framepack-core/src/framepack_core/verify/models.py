"""Verification result models.

Models for representing integrity check results on a finished package.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CheckStatus(str, Enum):
    """Status of an integrity check.

    Attributes:
        PASSED: Check passed successfully
        FAILED: Check failed
        SKIPPED: Check was skipped (an earlier check for the target failed)
        WARNING: Check passed with warnings
        ERROR: Check encountered an error
    """

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    WARNING = "warning"
    ERROR = "error"


class CheckName(str, Enum):
    """Integrity checks, in the order they run for each target."""

    STRUCTURE = "structure"
    SYMBOL_EXPORT = "symbol_export"
    SIGNATURE = "signature"
    INSTALL_NAME = "install_name"


class CheckResult(BaseModel):
    """Result of one check for one target.

    Attributes:
        name: Check name (e.g., "structure", "symbol_export")
        target: Target identifier the check ran against
        status: Check status
        message: Human-readable result message
        details: Additional details (missing symbols, install names, etc.)
        duration_ms: Check duration in milliseconds
        timestamp: When the check was performed

    Example:
        >>> result = CheckResult(
        ...     name="symbol_export",
        ...     target="ios-arm64",
        ...     status=CheckStatus.PASSED,
        ...     message="3 symbols exported",
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Check name")
    target: str = Field(..., min_length=1, description="Target identifier")
    status: CheckStatus = Field(..., description="Check status")
    message: str = Field(default="", description="Result message")
    details: dict[str, Any] = Field(default_factory=dict, description="Additional details")
    duration_ms: int = Field(default=0, ge=0, description="Duration in milliseconds")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Check timestamp"
    )

    @property
    def passed(self) -> bool:
        """Check if result indicates success."""
        return self.status in (CheckStatus.PASSED, CheckStatus.SKIPPED, CheckStatus.WARNING)

    @property
    def failed(self) -> bool:
        """Check if result indicates failure."""
        return self.status in (CheckStatus.FAILED, CheckStatus.ERROR)


class VerificationResult(BaseModel):
    """Aggregated result of all integrity checks on a package.

    Attributes:
        package: Package directory that was verified
        checks: Individual check results, target by target
        overall_status: Overall verification status
        started_at: When verification started
        finished_at: When verification finished
        total_duration_ms: Total duration in milliseconds
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    package: Path = Field(..., description="Verified package")
    checks: list[CheckResult] = Field(default_factory=list, description="Check results")
    overall_status: CheckStatus = Field(default=CheckStatus.PASSED, description="Overall status")
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Start time"
    )
    finished_at: datetime | None = Field(default=None, description="End time")
    total_duration_ms: int = Field(default=0, ge=0, description="Total duration")

    @property
    def passed(self) -> bool:
        """Check if all integrity checks passed."""
        return self.overall_status in (CheckStatus.PASSED, CheckStatus.WARNING)

    @property
    def failed(self) -> bool:
        """Check if any integrity check failed."""
        return self.overall_status in (CheckStatus.FAILED, CheckStatus.ERROR)

    @property
    def passed_count(self) -> int:
        """Count of passed checks."""
        return sum(1 for c in self.checks if c.passed)

    @property
    def failed_count(self) -> int:
        """Count of failed checks."""
        return sum(1 for c in self.checks if c.failed)

    @property
    def first_failure(self) -> CheckResult | None:
        """First failing check in run order."""
        return next((c for c in self.checks if c.failed), None)

    def for_target(self, target: str) -> list[CheckResult]:
        return [c for c in self.checks if c.target == target]
