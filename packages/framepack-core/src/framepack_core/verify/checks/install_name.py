"""Install name check.

The binary's self-reference must use the ``@rpath`` token and match the
binary's location inside its bundle, never an absolute build-time path.
"""

from __future__ import annotations

from framepack_core.toolchain.inspect import RPATH_TOKEN
from framepack_core.verify.checks.base import BaseCheck
from framepack_core.verify.models import CheckName, CheckResult, CheckStatus


class InstallNameCheck(BaseCheck):
    """The binary is relocatable."""

    name = CheckName.INSTALL_NAME.value

    def _execute(self) -> CheckResult:
        names = self.inspector.install_names(self.binary)
        if not names:
            return self._make_result(
                CheckStatus.FAILED,
                "Binary has no install name",
                {"binary": str(self.binary)},
            )

        expected = f"{RPATH_TOKEN}/{self.entry.binary_path}"
        absolute = [n for n in names if n.startswith("/")]
        if absolute:
            return self._make_result(
                CheckStatus.FAILED,
                f"Install name is an absolute path: {absolute[0]}",
                {"install_names": list(names), "expected": expected},
            )

        wrong = [n for n in names if n != expected]
        if wrong:
            return self._make_result(
                CheckStatus.FAILED,
                f"Install name {wrong[0]} does not match bundle location {expected}",
                {"install_names": list(names), "expected": expected},
            )

        return self._make_result(CheckStatus.PASSED, expected, {"install_names": list(names)})
