"""Bundle structure check.

Verifies that a target's bundle exists where the manifest says it is, with
its binary, headers, Info.plist, and (for versioned bundles) the root
symlinks, and that the binary contains the architectures the manifest lists.
"""

from __future__ import annotations

import os

from framepack_core.bundle.layout import detect_layout
from framepack_core.errors import PackagingError
from framepack_core.verify.checks.base import BaseCheck
from framepack_core.verify.models import CheckName, CheckResult, CheckStatus


class StructureCheck(BaseCheck):
    """Every expected bundle directory exists at its expected path."""

    name = CheckName.STRUCTURE.value

    def _execute(self) -> CheckResult:
        try:
            entry = self.entry
        except PackagingError as e:
            return self._make_result(CheckStatus.FAILED, e.user_message)

        bundle_dir = self.package.bundle_for(self.target)
        if not bundle_dir.is_dir():
            return self._make_result(
                CheckStatus.FAILED,
                f"Bundle directory not found: {bundle_dir}",
                {"expected_path": str(bundle_dir)},
            )

        layout = detect_layout(bundle_dir, self.package.framework_name)
        problems: list[str] = []

        if not self.binary.is_file():
            problems.append(f"binary missing at {entry.binary_path}")
        if not layout.headers_path.is_dir():
            problems.append("Headers directory missing")
        if not layout.info_plist_path.is_file():
            problems.append("Info.plist missing")

        for link, target in layout.expected_symlinks().items():
            if not link.is_symlink():
                problems.append(f"{link.relative_to(bundle_dir)} is not a symlink")
            elif os.readlink(link) != target:
                problems.append(f"{link.relative_to(bundle_dir)} points at {os.readlink(link)}")

        if problems:
            return self._make_result(
                CheckStatus.FAILED,
                "; ".join(problems),
                {"bundle": str(bundle_dir), "layout": layout.kind.value},
            )

        actual = self.inspector.architectures(self.binary)
        expected = tuple(sorted(entry.architectures))
        if actual != expected:
            return self._make_result(
                CheckStatus.FAILED,
                f"Binary contains {list(actual)}, manifest lists {list(expected)}",
                {"actual": list(actual), "expected": list(expected)},
            )

        return self._make_result(
            CheckStatus.PASSED,
            f"{layout.kind.value} bundle with {', '.join(actual)}",
            {"bundle": str(bundle_dir), "layout": layout.kind.value},
        )
