"""Schema definitions for framepack.

This module exports the configuration models:

Root Model:
- PipelineSpec: Root schema for framepack.yaml

Component Models:
- SourceConfig: Pinned native source tree
- BundleMetadata: Info.plist metadata shared by every bundle
- PlatformTarget: (OS family, architectures, minimum OS version) triple

Enums:
- OSFamily: Supported operating-system families
- LayoutKind: Flat or versioned bundle layout
- Linkage: Dynamic or static library output
"""

from __future__ import annotations

from framepack_core.schemas.bundle_metadata import BundleMetadata
from framepack_core.schemas.pipeline_spec import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_FILE,
    FLOATING_REFS,
    PIPELINE_SPEC_VERSION,
    Linkage,
    PipelineSpec,
    SourceConfig,
    resolve_config_path,
)
from framepack_core.schemas.platform_target import (
    KNOWN_ARCHITECTURES,
    LayoutKind,
    OSFamily,
    PlatformTarget,
    default_targets,
)

__all__ = [
    # Root
    "PipelineSpec",
    "PIPELINE_SPEC_VERSION",
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_FILE",
    "resolve_config_path",
    # Components
    "SourceConfig",
    "FLOATING_REFS",
    "BundleMetadata",
    "PlatformTarget",
    "KNOWN_ARCHITECTURES",
    "default_targets",
    # Enums
    "OSFamily",
    "LayoutKind",
    "Linkage",
]
