"""Toolchain access for framepack.

- ToolRunner / ToolError: external command execution
- Toolchain: tool probing and SDK resolution
- BinaryInspector: Mach-O inspection (symbols, slices, install names, signatures)
"""

from __future__ import annotations

from framepack_core.toolchain.inspect import (
    RPATH_TOKEN,
    BinaryInspector,
    BinaryType,
    SignatureRecord,
    SymbolExportRecord,
)
from framepack_core.toolchain.runner import ToolError, ToolResult, ToolRunner
from framepack_core.toolchain.toolchain import (
    BUILD_TOOLS,
    SOURCE_TOOLS,
    VERIFY_TOOLS,
    Toolchain,
)

__all__ = [
    "ToolRunner",
    "ToolResult",
    "ToolError",
    "Toolchain",
    "BUILD_TOOLS",
    "VERIFY_TOOLS",
    "SOURCE_TOOLS",
    "BinaryInspector",
    "BinaryType",
    "SymbolExportRecord",
    "SignatureRecord",
    "RPATH_TOKEN",
]
