"""Framework bundle assembly: layouts, Info.plist synthesis, and the assembler."""

from __future__ import annotations

from framepack_core.bundle.assembler import BundleAssembler, FrameworkBundle
from framepack_core.bundle.layout import (
    BundleLayout,
    FlatLayout,
    VersionedLayout,
    detect_layout,
    framework_dirname,
    layout_for,
)
from framepack_core.bundle.metadata import build_info_plist, read_plist, write_plist

__all__ = [
    "BundleAssembler",
    "FrameworkBundle",
    "BundleLayout",
    "FlatLayout",
    "VersionedLayout",
    "layout_for",
    "detect_layout",
    "framework_dirname",
    "build_info_plist",
    "read_plist",
    "write_plist",
]
