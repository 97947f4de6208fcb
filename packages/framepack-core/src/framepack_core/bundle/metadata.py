"""Info.plist synthesis for framework bundles."""

from __future__ import annotations

import plistlib
from pathlib import Path
from typing import Any

from framepack_core.schemas.bundle_metadata import BundleMetadata
from framepack_core.schemas.platform_target import LayoutKind, PlatformTarget

FRAMEWORK_PACKAGE_TYPE = "FMWK"
INFO_DICTIONARY_VERSION = "6.0"


def build_info_plist(
    target: PlatformTarget,
    metadata: BundleMetadata,
    executable: str,
) -> dict[str, Any]:
    """Build the Info.plist dictionary of one bundle.

    Flat-layout bundles also declare their supported platform, minimum OS
    version, and device families. Versioned bundles carry only the common
    keys.

    Args:
        target: Platform target the bundle is for.
        metadata: Bundle metadata shared by every target.
        executable: Framework binary name.

    Returns:
        Info.plist keys and values.
    """
    info: dict[str, Any] = {
        "CFBundleDevelopmentRegion": metadata.development_region,
        "CFBundleExecutable": executable,
        "CFBundleIdentifier": metadata.bundle_identifier,
        "CFBundleInfoDictionaryVersion": INFO_DICTIONARY_VERSION,
        "CFBundleName": metadata.display_name,
        "CFBundlePackageType": FRAMEWORK_PACKAGE_TYPE,
        "CFBundleShortVersionString": metadata.effective_short_version,
        "CFBundleVersion": metadata.version,
    }

    if target.layout is LayoutKind.FLAT:
        info["CFBundleSupportedPlatforms"] = [target.bundle_platform]
        info["MinimumOSVersion"] = target.min_os_version
        if target.device_families:
            info["UIDeviceFamily"] = list(target.device_families)

    return info


def write_plist(path: Path, data: dict[str, Any]) -> None:
    """Write a dictionary as an XML property list with sorted keys."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        plistlib.dump(data, f, fmt=plistlib.FMT_XML, sort_keys=True)


def read_plist(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        data = plistlib.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a dictionary")
    return data
