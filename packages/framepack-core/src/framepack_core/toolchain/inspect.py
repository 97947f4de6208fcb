"""Mach-O binary inspection.

Thin parsers over the Xcode command-line tools:

- ``otool -hv``: file type (dynamic library, static archive, object)
- ``lipo -archs``: architecture slices
- ``nm -gU``: defined external symbols
- ``otool -D``: install name (the binary's self-reference path)
- ``codesign -dv``: signature details

The derived records (SymbolExportRecord, SignatureRecord) are regenerated
on every call; nothing is cached across binaries.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict, Field

from framepack_core.toolchain.runner import ToolRunner

logger = structlog.get_logger(__name__)

# Token a relocatable install name must start with
RPATH_TOKEN = "@rpath"


class BinaryType(str, Enum):
    """Mach-O file type as reported by ``otool -hv``."""

    DYLIB = "DYLIB"
    ARCHIVE = "ARCHIVE"
    OBJECT = "OBJECT"
    EXECUTE = "EXECUTE"
    BUNDLE = "BUNDLE"
    UNKNOWN = "UNKNOWN"


class SymbolExportRecord(BaseModel):
    """Routine names a binary exposes to runtime symbol-by-name lookup.

    Only dynamic libraries have a dynamic symbol table, so the record of a
    static archive is always empty regardless of what the archive defines.

    Attributes:
        path: Inspected binary.
        architecture: Slice the record was read from (None for thin binaries).
        binary_type: Mach-O file type.
        symbols: Exported routine names, without the Mach-O underscore prefix.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: Path
    architecture: str | None = None
    binary_type: BinaryType
    symbols: frozenset[str] = Field(default_factory=frozenset)

    @property
    def exports_dynamically(self) -> bool:
        return self.binary_type is BinaryType.DYLIB

    def missing(self, required: list[str] | tuple[str, ...]) -> list[str]:
        """Return the required names absent from the record, in input order."""
        return [name for name in required if name not in self.symbols]


class SignatureRecord(BaseModel):
    """Code signature state of a binary.

    Attributes:
        path: Inspected binary.
        signed: Whether a signature is present.
        kind: ``adhoc`` or the leaf signing authority.
        identifier: Signing identifier.
        authorities: Certificate chain, leaf first.
        team_identifier: Team identifier, if any.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: Path
    signed: bool
    kind: str | None = None
    identifier: str | None = None
    authorities: tuple[str, ...] = ()
    team_identifier: str | None = None


class BinaryInspector:
    """Reads structural facts out of Mach-O binaries.

    Example:
        >>> inspector = BinaryInspector(ToolRunner())
        >>> inspector.architectures(Path("h3.framework/h3"))
        ('arm64', 'x86_64')
        >>> "degsToRads" in inspector.dynamic_symbols(Path("h3.framework/h3"))
        True
    """

    def __init__(self, runner: ToolRunner | None = None) -> None:
        self.runner = runner or ToolRunner()
        self._log = logger.bind(component="binary_inspector")

    def binary_type(self, path: Path) -> BinaryType:
        """Determine the Mach-O file type.

        Universal binaries report the type of their slices; if slices
        disagree, UNKNOWN is returned.
        """
        result = self.runner.run(["otool", "-hv", str(path)])
        return parse_file_type(result.stdout)

    def architectures(self, path: Path) -> tuple[str, ...]:
        """Architectures contained in a binary, sorted."""
        result = self.runner.run(["lipo", "-archs", str(path)])
        return tuple(sorted(result.stdout.split()))

    def exported_symbols(self, path: Path, arch: str | None = None) -> frozenset[str]:
        """Defined external symbols, whatever the file type.

        Args:
            path: Binary or archive to read.
            arch: Restrict to one slice of a universal binary.

        Returns:
            Symbol names without the leading Mach-O underscore.
        """
        args = ["nm", "-gU"]
        if arch:
            args += ["-arch", arch]
        args.append(str(path))
        result = self.runner.run(args)
        return parse_nm_symbols(result.stdout)

    def symbol_export(self, path: Path, arch: str | None = None) -> SymbolExportRecord:
        """Build the SymbolExportRecord of one binary slice."""
        kind = self.binary_type(path)
        symbols = self.exported_symbols(path, arch) if kind is BinaryType.DYLIB else frozenset()
        if kind is not BinaryType.DYLIB:
            self._log.debug("no_dynamic_symbol_table", path=str(path), binary_type=kind.value)
        return SymbolExportRecord(
            path=path,
            architecture=arch,
            binary_type=kind,
            symbols=symbols,
        )

    def dynamic_symbols(self, path: Path, arch: str | None = None) -> frozenset[str]:
        """Names reachable through runtime symbol-by-name lookup."""
        return self.symbol_export(path, arch).symbols

    def install_names(self, path: Path) -> tuple[str, ...]:
        """Install names recorded in the binary (one per distinct value)."""
        result = self.runner.run(["otool", "-D", str(path)])
        return parse_install_names(result.stdout)

    def signature(self, path: Path) -> SignatureRecord:
        """Read the code signature of a binary.

        An unsigned binary is reported as ``signed=False``, not raised.
        """
        result = self.runner.run(["codesign", "-dv", "--verbose=2", str(path)], check=False)
        return parse_signature(path, result.returncode, result.output)


def parse_file_type(output: str) -> BinaryType:
    """Parse ``otool -hv`` output into a BinaryType."""
    kinds: set[str] = set()
    for line in output.splitlines():
        stripped = line.strip()
        if stripped.startswith("Archive :"):
            return BinaryType.ARCHIVE
        if stripped.startswith("MH_MAGIC") or stripped.startswith("MH_CIGAM"):
            parts = stripped.split()
            if len(parts) > 4:
                kinds.add(parts[4])

    if len(kinds) != 1:
        return BinaryType.UNKNOWN
    try:
        return BinaryType(kinds.pop())
    except ValueError:
        return BinaryType.UNKNOWN


def parse_nm_symbols(output: str) -> frozenset[str]:
    """Parse ``nm -gU`` output into bare symbol names."""
    names: set[str] = set()
    for line in output.splitlines():
        stripped = line.strip()
        # Member and slice headers ("lib.a(h3.o):", "lib (for architecture arm64):")
        if not stripped or stripped.endswith(":"):
            continue
        parts = stripped.split()
        if len(parts) < 3:
            continue
        name = parts[-1]
        names.add(name[1:] if name.startswith("_") else name)
    return frozenset(names)


def parse_install_names(output: str) -> tuple[str, ...]:
    """Parse ``otool -D`` output, skipping file and slice headers."""
    names: list[str] = []
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped or stripped.endswith(":") or stripped.startswith("Archive :"):
            continue
        if stripped not in names:
            names.append(stripped)
    return tuple(names)


def parse_signature(path: Path, returncode: int, output: str) -> SignatureRecord:
    """Parse ``codesign -dv`` output into a SignatureRecord."""
    fields: dict[str, str] = {}
    authorities: list[str] = []
    for line in output.splitlines():
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        if key == "Authority":
            authorities.append(value)
        else:
            fields.setdefault(key, value)

    signature_value = fields.get("Signature")
    has_signature = bool(signature_value) or bool(authorities) or "Signature size" in fields
    signed = returncode == 0 and has_signature

    kind: str | None = None
    if signed:
        kind = "adhoc" if signature_value == "adhoc" else (authorities[0] if authorities else None)

    team = fields.get("TeamIdentifier")
    return SignatureRecord(
        path=path,
        signed=signed,
        kind=kind,
        identifier=fields.get("Identifier") if signed else None,
        authorities=tuple(authorities),
        team_identifier=team if team and team != "not set" else None,
    )
