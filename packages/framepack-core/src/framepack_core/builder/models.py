"""Build artifact models.

BuildArtifact is the compiled library of one PlatformTarget before it is
bundled. SliceManifest is the content-level description of a (possibly
universal) binary, used to compare merge outputs independently of bytes.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from framepack_core.schemas.pipeline_spec import Linkage
from framepack_core.schemas.platform_target import PlatformTarget
from framepack_core.toolchain.inspect import BinaryInspector


class BuildArtifact(BaseModel):
    """Compiled library for one PlatformTarget.

    Created by the compiler (one per architecture), merged by the universal
    binary merger, and consumed by the bundle assembler.

    Attributes:
        target: Owning platform target.
        path: Library file on disk.
        architectures: Architectures contained in the file, sorted.
        install_name: Self-reference path recorded in the binary.
        linkage: Linkage the library was built with.
        headers_dir: Installed public headers.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    target: PlatformTarget = Field(..., description="Owning target")
    path: Path = Field(..., description="Library file")
    architectures: tuple[str, ...] = Field(..., min_length=1, description="Contained architectures")
    install_name: str | None = Field(default=None, description="Install name")
    linkage: Linkage = Field(default=Linkage.DYNAMIC, description="Linkage mode")
    headers_dir: Path = Field(..., description="Public headers directory")

    @property
    def target_id(self) -> str:
        return self.target.identifier

    @property
    def is_universal(self) -> bool:
        """Whether the artifact holds more than one architecture slice."""
        return len(self.architectures) > 1


class SliceManifest(BaseModel):
    """Architectures and exported symbols of a binary.

    Two merges of identical inputs produce equal manifests even when the
    bytes differ (timestamps, UUIDs).

    Attributes:
        target_id: Owning target identifier.
        architectures: Slices, sorted.
        symbols: Exported symbols per slice, sorted.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    target_id: str
    architectures: tuple[str, ...]
    symbols: dict[str, tuple[str, ...]]

    @property
    def digest(self) -> str:
        """SHA-256 of the canonical JSON form."""
        canonical = json.dumps(
            {
                "target": self.target_id,
                "architectures": list(self.architectures),
                "symbols": {arch: list(names) for arch, names in sorted(self.symbols.items())},
            },
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    @classmethod
    def from_binary(
        cls,
        target_id: str,
        path: Path,
        inspector: BinaryInspector,
    ) -> SliceManifest:
        """Read the manifest of a binary on disk.

        Args:
            target_id: Owning target identifier.
            path: Binary to inspect.
            inspector: Inspector used to read slices and symbols.

        Returns:
            SliceManifest of the binary.
        """
        architectures = inspector.architectures(path)
        symbols = {
            arch: tuple(sorted(inspector.exported_symbols(path, arch)))
            for arch in architectures
        }
        return cls(target_id=target_id, architectures=architectures, symbols=symbols)
