"""Framework bundle layouts.

Two layout conventions exist, selected by the target's OS family:

Flat (iOS, tvOS, watchOS, visionOS)::

    h3.framework/
        h3
        Headers/
        Info.plist

Versioned (macOS, Mac Catalyst)::

    h3.framework/
        Versions/
            A/
                h3
                Headers/
                Resources/Info.plist
            Current -> A
        h3 -> Versions/Current/h3
        Headers -> Versions/Current/Headers
        Resources -> Versions/Current/Resources

Each layout knows where the binary lives and therefore which ``@rpath``
install name the binary must carry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

import structlog

from framepack_core.schemas.platform_target import LayoutKind, PlatformTarget
from framepack_core.toolchain.inspect import RPATH_TOKEN
from framepack_core.toolchain.runner import ToolRunner

logger = structlog.get_logger(__name__)

FRAMEWORK_SUFFIX = ".framework"

# Version label used by the versioned layout
DEFAULT_VERSION_LABEL = "A"


class BundleLayout(ABC):
    """Where a framework bundle keeps its binary, headers, and metadata.

    Attributes:
        root: Bundle directory (``<name>.framework``).
        name: Framework binary name.
    """

    kind: LayoutKind

    def __init__(self, root: Path, name: str) -> None:
        self.root = root
        self.name = name

    @property
    def bundle_dirname(self) -> str:
        return f"{self.name}{FRAMEWORK_SUFFIX}"

    @property
    @abstractmethod
    def content_dir(self) -> Path:
        """Directory physically holding the binary and headers."""

    @property
    def binary_path(self) -> Path:
        """Canonical location of the binary."""
        return self.content_dir / self.name

    @property
    def headers_path(self) -> Path:
        """Canonical location of the public headers."""
        return self.content_dir / "Headers"

    @property
    @abstractmethod
    def info_plist_path(self) -> Path:
        """Canonical location of the Info.plist."""

    @property
    def relative_binary_path(self) -> str:
        """Binary path relative to the bundle's parent (``h3.framework/h3``)."""
        return f"{self.bundle_dirname}/{self.binary_path.relative_to(self.root).as_posix()}"

    @property
    def install_name(self) -> str:
        """Relocatable self-reference for the binary at its canonical location."""
        return f"{RPATH_TOKEN}/{self.relative_binary_path}"

    def create_skeleton(self) -> None:
        """Create the empty directory structure."""
        self.headers_path.mkdir(parents=True, exist_ok=True)
        self.info_plist_path.parent.mkdir(parents=True, exist_ok=True)

    def link_current_version(self) -> None:  # noqa: B027
        """Create convenience symlinks (no-op for layouts without versions)."""

    def expected_symlinks(self) -> dict[Path, str]:
        """Symlinks the layout requires, mapped to their link targets."""
        return {}

    def rewrite_self_reference(self, runner: ToolRunner) -> str:
        """Point the binary's install name at its location inside the bundle.

        Args:
            runner: ToolRunner used for install_name_tool.

        Returns:
            The install name that was written.

        Raises:
            ToolError: If install_name_tool rejects the binary.
        """
        runner.run(["install_name_tool", "-id", self.install_name, str(self.binary_path)])
        return self.install_name


class FlatLayout(BundleLayout):
    """Binary, headers, and Info.plist directly under the bundle root."""

    kind = LayoutKind.FLAT

    @property
    def content_dir(self) -> Path:
        return self.root

    @property
    def info_plist_path(self) -> Path:
        return self.root / "Info.plist"


class VersionedLayout(BundleLayout):
    """Content under ``Versions/<label>/`` with root symlinks to ``Versions/Current``."""

    kind = LayoutKind.VERSIONED

    def __init__(self, root: Path, name: str, version_label: str = DEFAULT_VERSION_LABEL) -> None:
        super().__init__(root, name)
        self.version_label = version_label

    @property
    def versions_dir(self) -> Path:
        return self.root / "Versions"

    @property
    def content_dir(self) -> Path:
        return self.versions_dir / self.version_label

    @property
    def resources_path(self) -> Path:
        return self.content_dir / "Resources"

    @property
    def info_plist_path(self) -> Path:
        return self.resources_path / "Info.plist"

    def expected_symlinks(self) -> dict[Path, str]:
        return {
            self.versions_dir / "Current": self.version_label,
            self.root / self.name: f"Versions/Current/{self.name}",
            self.root / "Headers": "Versions/Current/Headers",
            self.root / "Resources": "Versions/Current/Resources",
        }

    def link_current_version(self) -> None:
        """Create ``Versions/Current`` and the root convenience symlinks."""
        for link, target in self.expected_symlinks().items():
            if link.is_symlink() or link.exists():
                link.unlink()
            link.symlink_to(target)
        logger.debug("version_linked", root=str(self.root), version=self.version_label)


_LAYOUTS: dict[LayoutKind, type[BundleLayout]] = {
    LayoutKind.FLAT: FlatLayout,
    LayoutKind.VERSIONED: VersionedLayout,
}


def framework_dirname(name: str) -> str:
    return f"{name}{FRAMEWORK_SUFFIX}"


def layout_for(target: PlatformTarget, root: Path, name: str) -> BundleLayout:
    """Select the layout of a target's OS family.

    Args:
        target: Platform target the bundle is for.
        root: Bundle directory.
        name: Framework binary name.

    Returns:
        FlatLayout or VersionedLayout.
    """
    return _LAYOUTS[target.layout](root, name)


def detect_layout(root: Path, name: str) -> BundleLayout:
    """Recognize the layout of an existing bundle on disk."""
    kind = LayoutKind.VERSIONED if (root / "Versions").is_dir() else LayoutKind.FLAT
    return _LAYOUTS[kind](root, name)
