"""Multi-platform package models.

A MultiPlatformPackage is a directory with one subdirectory per target
identifier, each holding that target's framework bundle, plus a top-level
Info.plist manifest listing every library:

    h3.xcframework/
        Info.plist
        ios-arm64/h3.framework
        ios-arm64_x86_64-simulator/h3.framework
        macos-arm64_x86_64/h3.framework
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from xml.parsers.expat import ExpatError

from pydantic import BaseModel, ConfigDict, Field

from framepack_core.bundle.metadata import read_plist
from framepack_core.errors import PackagingError

MANIFEST_FILE = "Info.plist"
PACKAGE_TYPE = "XFWK"
FORMAT_VERSION = "1.0"


class PackageEntry(BaseModel):
    """One library listed in the package manifest.

    Attributes:
        identifier: Target identifier (subdirectory name).
        library_path: Bundle directory relative to the subdirectory.
        binary_path: Binary relative to the subdirectory.
        architectures: Architectures of the binary.
        platform: SupportedPlatform value.
        variant: SupportedPlatformVariant value (simulator, maccatalyst).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    identifier: str = Field(..., min_length=1)
    library_path: str = Field(..., min_length=1)
    binary_path: str = Field(..., min_length=1)
    architectures: tuple[str, ...] = Field(..., min_length=1)
    platform: str = Field(..., min_length=1)
    variant: str | None = None

    def to_plist(self) -> dict[str, Any]:
        """Manifest dictionary in AvailableLibraries format."""
        data: dict[str, Any] = {
            "BinaryPath": self.binary_path,
            "LibraryIdentifier": self.identifier,
            "LibraryPath": self.library_path,
            "SupportedArchitectures": list(self.architectures),
            "SupportedPlatform": self.platform,
        }
        if self.variant:
            data["SupportedPlatformVariant"] = self.variant
        return data

    @classmethod
    def from_plist(cls, data: dict[str, Any]) -> PackageEntry:
        return cls(
            identifier=data["LibraryIdentifier"],
            library_path=data["LibraryPath"],
            binary_path=data["BinaryPath"],
            architectures=tuple(data["SupportedArchitectures"]),
            platform=data["SupportedPlatform"],
            variant=data.get("SupportedPlatformVariant"),
        )


class MultiPlatformPackage(BaseModel):
    """The durable output of a pipeline run.

    Attributes:
        path: Package directory (``<name>.xcframework``).
        framework_name: Framework binary name.
        entries: Libraries listed in the manifest, in target order.

    Example:
        >>> package = MultiPlatformPackage.load(Path("dist/h3.xcframework"))
        >>> package.bundle_for("ios-arm64")
        PosixPath('dist/h3.xcframework/ios-arm64/h3.framework')
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: Path
    framework_name: str
    entries: tuple[PackageEntry, ...] = ()

    @property
    def identifiers(self) -> tuple[str, ...]:
        return tuple(e.identifier for e in self.entries)

    @property
    def manifest_path(self) -> Path:
        return self.path / MANIFEST_FILE

    def entry_for(self, identifier: str) -> PackageEntry:
        """Get the single manifest entry of a target.

        Raises:
            PackagingError: If the target has no entry or more than one.
        """
        matches = [e for e in self.entries if e.identifier == identifier]
        if not matches:
            raise PackagingError(
                f"Package has no bundle for target '{identifier}'",
                missing=[identifier],
            )
        if len(matches) > 1:
            raise PackagingError(
                f"Package has {len(matches)} bundles for target '{identifier}'",
                duplicated=[identifier],
            )
        return matches[0]

    def bundle_for(self, identifier: str) -> Path:
        """Bundle directory of a target (exactly one match)."""
        entry = self.entry_for(identifier)
        return self.path / identifier / entry.library_path

    def binary_for(self, identifier: str) -> Path:
        """Framework binary of a target."""
        entry = self.entry_for(identifier)
        return self.path / identifier / entry.binary_path

    def to_manifest(self) -> dict[str, Any]:
        """Top-level Info.plist dictionary."""
        return {
            "AvailableLibraries": [e.to_plist() for e in self.entries],
            "CFBundlePackageType": PACKAGE_TYPE,
            "XCFrameworkFormatVersion": FORMAT_VERSION,
        }

    @classmethod
    def load(cls, path: Path | str) -> MultiPlatformPackage:
        """Read a package from disk.

        Args:
            path: Package directory.

        Returns:
            MultiPlatformPackage described by the directory's manifest.

        Raises:
            PackagingError: If the directory or its manifest is missing or
                malformed.
        """
        path = Path(path)
        manifest = path / MANIFEST_FILE
        if not manifest.is_file():
            raise PackagingError(f"No package manifest at {manifest}")

        try:
            data = read_plist(manifest)
            entries = tuple(PackageEntry.from_plist(item) for item in data["AvailableLibraries"])
        except (ExpatError, KeyError, TypeError, ValueError) as e:
            raise PackagingError(
                f"Malformed package manifest at {manifest}",
                internal_details=str(e),
            ) from e

        if data.get("CFBundlePackageType") != PACKAGE_TYPE:
            raise PackagingError(f"{manifest} is not a multi-platform package manifest")

        name = path.name.removesuffix(".xcframework")
        if entries:
            name = Path(entries[0].library_path).stem
        return cls(path=path, framework_name=name, entries=entries)
