"""Descriptive metadata for framework bundles.

The fields here feed the Info.plist written into every FrameworkBundle.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Reverse-DNS bundle identifier (com.example.lib)
BUNDLE_IDENTIFIER_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9-]*(\.[A-Za-z0-9-]+)+$"

# CFBundleVersion accepts up to three dot-separated integers
BUNDLE_VERSION_PATTERN = r"^\d+(\.\d+){0,2}$"


class BundleMetadata(BaseModel):
    """Descriptive metadata shared by every bundle of a package.

    Attributes:
        bundle_identifier: Reverse-DNS identifier (CFBundleIdentifier).
        display_name: Human-readable name (CFBundleName).
        version: Full version string (CFBundleVersion).
        short_version: Marketing version (CFBundleShortVersionString),
            defaults to ``version``.
        development_region: CFBundleDevelopmentRegion.

    Example:
        >>> metadata = BundleMetadata(
        ...     bundle_identifier="com.uber.h3",
        ...     display_name="h3",
        ...     version="4.2.1",
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    bundle_identifier: str = Field(
        ...,
        pattern=BUNDLE_IDENTIFIER_PATTERN,
        description="Reverse-DNS bundle identifier",
    )
    display_name: str = Field(..., min_length=1, description="Human-readable name")
    version: str = Field(..., pattern=BUNDLE_VERSION_PATTERN, description="Bundle version")
    short_version: str | None = Field(
        default=None,
        pattern=BUNDLE_VERSION_PATTERN,
        description="Short version string (defaults to version)",
    )
    development_region: str = Field(default="en", min_length=1, description="Development region")

    @property
    def effective_short_version(self) -> str:
        """Short version string, falling back to the full version."""
        return self.short_version or self.version
