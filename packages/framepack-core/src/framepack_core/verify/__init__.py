"""Package integrity verification.

Mandatory gate after packaging. Checks, each reported per target:
- structure: bundle directory, binary, headers, metadata at expected paths
- symbol_export: required routines in the dynamic symbol table
- signature: binary carries a trust signature
- install_name: binary's self-reference is @rpath-relative

Example:
    >>> from framepack_core.verify import verify_package
    >>> result = verify_package(package, inspector, required_symbols=["degsToRads"])
"""

from __future__ import annotations

from framepack_core.verify.models import (
    CheckName,
    CheckResult,
    CheckStatus,
    VerificationResult,
)
from framepack_core.verify.output import (
    format_result_json,
    format_result_table,
    print_result,
)
from framepack_core.verify.runner import IntegrityVerifier, raise_for_result, verify_package

__all__ = [
    # Models
    "CheckName",
    "CheckResult",
    "CheckStatus",
    "VerificationResult",
    # Runner
    "IntegrityVerifier",
    "verify_package",
    "raise_for_result",
    # Output
    "format_result_table",
    "format_result_json",
    "print_result",
]
