"""Native build stage: per-target compilation and universal binary merging."""

from __future__ import annotations

from framepack_core.builder.compiler import Compiler, library_filename
from framepack_core.builder.merger import UniversalBinaryMerger
from framepack_core.builder.models import BuildArtifact, SliceManifest

__all__ = [
    "Compiler",
    "library_filename",
    "UniversalBinaryMerger",
    "BuildArtifact",
    "SliceManifest",
]
