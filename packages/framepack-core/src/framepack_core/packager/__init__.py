"""Multi-platform packaging of framework bundles."""

from __future__ import annotations

from framepack_core.packager.models import MultiPlatformPackage, PackageEntry
from framepack_core.packager.packager import MultiPlatformPackager

__all__ = [
    "MultiPlatformPackage",
    "MultiPlatformPackager",
    "PackageEntry",
]
