"""Integrity check implementations.

Each check inspects one target of a finished package:
- StructureCheck: bundle directory, binary, headers, metadata, slices
- SymbolExportCheck: required routines in the dynamic symbol table
- SignatureCheck: binary is signed
- InstallNameCheck: binary's self-reference is @rpath-relative
"""

from __future__ import annotations

from framepack_core.verify.checks.base import BaseCheck
from framepack_core.verify.checks.install_name import InstallNameCheck
from framepack_core.verify.checks.signature import SignatureCheck
from framepack_core.verify.checks.structure import StructureCheck
from framepack_core.verify.checks.symbols import SymbolExportCheck

__all__ = [
    "BaseCheck",
    "StructureCheck",
    "SymbolExportCheck",
    "SignatureCheck",
    "InstallNameCheck",
]
