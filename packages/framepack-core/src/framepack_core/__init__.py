"""framepack-core: native library build, packaging, and runtime resolution.

This package provides:
- PipelineSpec: Pydantic schema for framepack.yaml configuration
- Pipeline: compile -> merge -> assemble -> package -> verify
- MultiPlatformPackage: the durable package output
- IntegrityVerifier: the post-packaging gate
- LibraryResolver: runtime library resolution for FFI consumers
"""

from __future__ import annotations

__version__ = "0.1.0"

# Build stages
from framepack_core.builder import BuildArtifact, Compiler, SliceManifest, UniversalBinaryMerger
from framepack_core.bundle import BundleAssembler, FrameworkBundle

# Error types
from framepack_core.errors import (
    AssemblyError,
    BuildEnvironmentError,
    CompilationError,
    ConfigurationError,
    ConsistencyError,
    FramepackError,
    LibraryLoadError,
    PackagingError,
    ResolutionError,
    SourceError,
    SymbolNotFoundError,
    UnsupportedPlatformError,
    VerificationError,
)
from framepack_core.observability import configure_logging
from framepack_core.packager import MultiPlatformPackage, MultiPlatformPackager
from framepack_core.pipeline import Pipeline, PipelineResult

# Runtime
from framepack_core.runtime import LibraryHandle, LibraryResolver, resolve_library

# Schema models
from framepack_core.schemas import (
    BundleMetadata,
    Linkage,
    OSFamily,
    PipelineSpec,
    PlatformTarget,
    SourceConfig,
)
from framepack_core.verify import IntegrityVerifier, VerificationResult, verify_package

__all__ = [
    "__version__",
    # Schemas
    "PipelineSpec",
    "SourceConfig",
    "BundleMetadata",
    "PlatformTarget",
    "OSFamily",
    "Linkage",
    # Pipeline
    "Pipeline",
    "PipelineResult",
    "Compiler",
    "UniversalBinaryMerger",
    "BuildArtifact",
    "SliceManifest",
    "BundleAssembler",
    "FrameworkBundle",
    "MultiPlatformPackager",
    "MultiPlatformPackage",
    "IntegrityVerifier",
    "VerificationResult",
    "verify_package",
    # Runtime
    "LibraryResolver",
    "LibraryHandle",
    "resolve_library",
    # Logging
    "configure_logging",
    # Errors
    "FramepackError",
    "ConfigurationError",
    "BuildEnvironmentError",
    "SourceError",
    "CompilationError",
    "ConsistencyError",
    "AssemblyError",
    "PackagingError",
    "VerificationError",
    "ResolutionError",
    "UnsupportedPlatformError",
    "LibraryLoadError",
    "SymbolNotFoundError",
]
