"""Symbol export check.

The smoke-test routine and every routine of the FFI contract must be in the
dynamic symbol table of every architecture slice. Static archives have no
dynamic symbol table, so they fail this check by construction.
"""

from __future__ import annotations

from collections.abc import Sequence

from framepack_core.packager.models import MultiPlatformPackage
from framepack_core.toolchain.inspect import BinaryInspector, BinaryType
from framepack_core.verify.checks.base import BaseCheck
from framepack_core.verify.models import CheckName, CheckResult, CheckStatus


class SymbolExportCheck(BaseCheck):
    """Required routines are exported for runtime lookup."""

    name = CheckName.SYMBOL_EXPORT.value

    def __init__(
        self,
        package: MultiPlatformPackage,
        target: str,
        inspector: BinaryInspector,
        *,
        required_symbols: Sequence[str],
    ) -> None:
        super().__init__(package, target, inspector)
        self.required_symbols = tuple(required_symbols)

    def _execute(self) -> CheckResult:
        if not self.required_symbols:
            return self._make_result(CheckStatus.SKIPPED, "No symbols to check")

        missing_by_arch: dict[str, list[str]] = {}
        binary_type = None
        for arch in self.entry.architectures:
            record = self.inspector.symbol_export(self.binary, arch)
            binary_type = record.binary_type
            missing = record.missing(self.required_symbols)
            if missing:
                missing_by_arch[arch] = missing

        if missing_by_arch:
            missing_all = sorted({s for names in missing_by_arch.values() for s in names})
            message = f"Missing from dynamic symbol table: {', '.join(missing_all)}"
            if binary_type is not None and binary_type is not BinaryType.DYLIB:
                message = f"{message} (binary is {binary_type.value}, not a dynamic library)"
            return self._make_result(
                CheckStatus.FAILED,
                message,
                {
                    "missing_symbols": missing_all,
                    "by_architecture": missing_by_arch,
                    "binary_type": binary_type.value if binary_type else None,
                },
            )

        return self._make_result(
            CheckStatus.PASSED,
            f"{len(self.required_symbols)} symbol(s) exported",
            {"symbols": list(self.required_symbols)},
        )
