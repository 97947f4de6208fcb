"""Code signature check."""

from __future__ import annotations

from framepack_core.verify.checks.base import BaseCheck
from framepack_core.verify.models import CheckName, CheckResult, CheckStatus


class SignatureCheck(BaseCheck):
    """The binary carries a non-empty trust signature."""

    name = CheckName.SIGNATURE.value

    def _execute(self) -> CheckResult:
        record = self.inspector.signature(self.binary)
        if not record.signed:
            return self._make_result(
                CheckStatus.FAILED,
                "Binary is not signed",
                {"binary": str(self.binary)},
            )

        details = {"kind": record.kind, "identifier": record.identifier}
        if record.team_identifier:
            details["team_identifier"] = record.team_identifier
        return self._make_result(CheckStatus.PASSED, f"Signed ({record.kind})", details)
