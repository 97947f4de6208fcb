"""PlatformTarget model.

A PlatformTarget identifies one (OS family, architecture set, minimum OS
version) build configuration. Everything the pipeline needs to know about a
family (SDK name, CMake system name, bundle layout, manifest platform tags)
is derived from the OS family, so targets in framepack.yaml stay small:

    - os_family: ios-simulator
      architectures: [x86_64, arm64]
      min_os_version: "12.0"
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Architectures accepted by the Apple toolchains
KNOWN_ARCHITECTURES = frozenset({"arm64", "arm64e", "x86_64", "i386", "armv7k", "arm64_32"})

MIN_OS_VERSION_PATTERN = r"^\d+(\.\d+){0,2}$"


class OSFamily(str, Enum):
    """Operating-system family a target is built for."""

    IOS = "ios"
    IOS_SIMULATOR = "ios-simulator"
    MACOS = "macos"
    MACCATALYST = "maccatalyst"
    TVOS = "tvos"
    TVOS_SIMULATOR = "tvos-simulator"
    WATCHOS = "watchos"
    WATCHOS_SIMULATOR = "watchos-simulator"
    VISIONOS = "visionos"
    VISIONOS_SIMULATOR = "visionos-simulator"


class LayoutKind(str, Enum):
    """Framework bundle layout convention.

    Attributes:
        FLAT: Binary and headers directly under the bundle root (mobile).
        VERSIONED: Binary and headers under Versions/<label>/ with root
            symlinks to the active version (desktop).
    """

    FLAT = "flat"
    VERSIONED = "versioned"


@dataclass(frozen=True)
class _FamilyTraits:
    sdk: str
    cmake_system_name: str
    bundle_platform: str
    manifest_platform: str
    variant: str | None
    layout: LayoutKind
    device_families: tuple[int, ...]


_TRAITS: dict[OSFamily, _FamilyTraits] = {
    OSFamily.IOS: _FamilyTraits("iphoneos", "iOS", "iPhoneOS", "ios", None, LayoutKind.FLAT, (1, 2)),
    OSFamily.IOS_SIMULATOR: _FamilyTraits(
        "iphonesimulator", "iOS", "iPhoneSimulator", "ios", "simulator", LayoutKind.FLAT, (1, 2)
    ),
    OSFamily.MACOS: _FamilyTraits(
        "macosx", "Darwin", "MacOSX", "macos", None, LayoutKind.VERSIONED, ()
    ),
    OSFamily.MACCATALYST: _FamilyTraits(
        "macosx", "Darwin", "MacOSX", "ios", "maccatalyst", LayoutKind.VERSIONED, ()
    ),
    OSFamily.TVOS: _FamilyTraits("appletvos", "tvOS", "AppleTVOS", "tvos", None, LayoutKind.FLAT, (3,)),
    OSFamily.TVOS_SIMULATOR: _FamilyTraits(
        "appletvsimulator", "tvOS", "AppleTVSimulator", "tvos", "simulator", LayoutKind.FLAT, (3,)
    ),
    OSFamily.WATCHOS: _FamilyTraits(
        "watchos", "watchOS", "WatchOS", "watchos", None, LayoutKind.FLAT, (4,)
    ),
    OSFamily.WATCHOS_SIMULATOR: _FamilyTraits(
        "watchsimulator", "watchOS", "WatchSimulator", "watchos", "simulator", LayoutKind.FLAT, (4,)
    ),
    OSFamily.VISIONOS: _FamilyTraits("xros", "visionOS", "XROS", "xros", None, LayoutKind.FLAT, (7,)),
    OSFamily.VISIONOS_SIMULATOR: _FamilyTraits(
        "xrsimulator", "visionOS", "XRSimulator", "xros", "simulator", LayoutKind.FLAT, (7,)
    ),
}


class PlatformTarget(BaseModel):
    """One build configuration the pipeline must produce an artifact for.

    Attributes:
        os_family: Operating-system family.
        architectures: Architectures to build (merged into one universal binary).
        min_os_version: Minimum deployment target.

    Example:
        >>> target = PlatformTarget(
        ...     os_family=OSFamily.IOS_SIMULATOR,
        ...     architectures=("x86_64", "arm64"),
        ...     min_os_version="12.0",
        ... )
        >>> target.identifier
        'ios-arm64_x86_64-simulator'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    os_family: OSFamily = Field(..., description="Operating-system family")
    architectures: tuple[str, ...] = Field(..., min_length=1, description="Architectures")
    min_os_version: str = Field(
        ...,
        pattern=MIN_OS_VERSION_PATTERN,
        description="Minimum deployment target",
    )

    @field_validator("architectures")
    @classmethod
    def validate_architectures(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Reject unknown and repeated architectures."""
        unknown = [arch for arch in v if arch not in KNOWN_ARCHITECTURES]
        if unknown:
            raise ValueError(
                f"Unknown architecture(s): {', '.join(unknown)}. "
                f"Known: {', '.join(sorted(KNOWN_ARCHITECTURES))}"
            )
        if len(set(v)) != len(v):
            raise ValueError(f"Duplicate architectures in {list(v)}")
        return v

    @property
    def traits(self) -> _FamilyTraits:
        """Toolchain and packaging traits of the OS family."""
        return _TRAITS[self.os_family]

    @property
    def identifier(self) -> str:
        """XCFramework library identifier, e.g. ``macos-arm64_x86_64``."""
        ident = f"{self.traits.manifest_platform}-{'_'.join(self.sorted_architectures)}"
        if self.traits.variant:
            ident = f"{ident}-{self.traits.variant}"
        return ident

    @property
    def sorted_architectures(self) -> tuple[str, ...]:
        """Architectures in canonical (sorted) order."""
        return tuple(sorted(self.architectures))

    @property
    def sdk(self) -> str:
        """SDK name passed to ``xcrun --sdk``."""
        return self.traits.sdk

    @property
    def cmake_system_name(self) -> str:
        """Value for ``CMAKE_SYSTEM_NAME``."""
        return self.traits.cmake_system_name

    @property
    def bundle_platform(self) -> str:
        """Value for ``CFBundleSupportedPlatforms``."""
        return self.traits.bundle_platform

    @property
    def manifest_platform(self) -> str:
        """``SupportedPlatform`` in the package manifest."""
        return self.traits.manifest_platform

    @property
    def platform_variant(self) -> str | None:
        """``SupportedPlatformVariant`` in the package manifest."""
        return self.traits.variant

    @property
    def layout(self) -> LayoutKind:
        """Bundle layout convention for this target."""
        return self.traits.layout

    @property
    def device_families(self) -> tuple[int, ...]:
        """``UIDeviceFamily`` values for flat-layout bundles."""
        return self.traits.device_families

    @property
    def is_catalyst(self) -> bool:
        return self.os_family is OSFamily.MACCATALYST

    def __str__(self) -> str:
        return self.identifier


def default_targets() -> list[PlatformTarget]:
    """Device, simulator, and desktop targets built by a typical Apple run.

    Returns:
        iOS device (arm64), iOS simulator (x86_64 + arm64) and macOS
        (x86_64 + arm64) targets.
    """
    return [
        PlatformTarget(os_family=OSFamily.IOS, architectures=("arm64",), min_os_version="12.0"),
        PlatformTarget(
            os_family=OSFamily.IOS_SIMULATOR,
            architectures=("x86_64", "arm64"),
            min_os_version="12.0",
        ),
        PlatformTarget(
            os_family=OSFamily.MACOS,
            architectures=("x86_64", "arm64"),
            min_os_version="10.13",
        ),
    ]
