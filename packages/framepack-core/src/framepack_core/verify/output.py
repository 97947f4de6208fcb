"""Rendering of VerificationResult as a per-target Rich table or as JSON."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

from framepack_core.verify.models import CheckResult, CheckStatus, VerificationResult

# label, style
_STATUS_STYLES: dict[CheckStatus, tuple[str, str]] = {
    CheckStatus.PASSED: ("ok", "green"),
    CheckStatus.WARNING: ("warn", "yellow"),
    CheckStatus.SKIPPED: ("skip", "dim"),
    CheckStatus.FAILED: ("FAIL", "red"),
    CheckStatus.ERROR: ("ERROR", "red bold"),
}


def _status_text(status: CheckStatus) -> Text:
    label, style = _STATUS_STYLES[status]
    return Text(label, style=style)


def _targets_in_order(result: VerificationResult) -> list[str]:
    return list(dict.fromkeys(check.target for check in result.checks))


def format_result_table(result: VerificationResult, console: Console | None = None) -> None:
    """Print one table section per target, then the details of every failure."""
    console = console or Console()

    summary = Text()
    summary.append("Package Verification", style="bold")
    summary.append(f"  {result.package}\n")
    summary.append("Result: ")
    summary.append_text(_status_text(result.overall_status))
    summary.append(
        f"  ({result.passed_count}/{len(result.checks)} checks passed"
        f", {result.total_duration_ms}ms)"
    )
    console.print(summary)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Target", no_wrap=True)
    table.add_column("Check", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Message")

    for target in _targets_in_order(result):
        for index, check in enumerate(result.for_target(target)):
            table.add_row(
                target if index == 0 else "",
                check.name,
                _status_text(check.status),
                Text(check.message or "-"),
            )
        table.add_section()
    console.print(table)

    failures = [c for c in result.checks if c.failed]
    if not failures:
        return
    console.print(Text("Failed Check Details", style="bold red"))
    for check in failures:
        console.print(Text(f"  {check.target} / {check.name}: {check.message}", style="red"))
        for key, value in check.details.items():
            console.print(Text(f"    {key}: {value}", style="dim"))


def _check_to_dict(check: CheckResult) -> dict[str, Any]:
    data = check.model_dump(mode="json", exclude={"timestamp"})
    data["passed"] = check.passed
    return data


def format_result_json(result: VerificationResult, pretty: bool = True) -> str:
    """Serialize a VerificationResult; ``first_failure`` names the gate failure."""
    failure = result.first_failure
    data = {
        "package": str(result.package),
        "status": result.overall_status.value,
        "passed": result.passed,
        "first_failure": (
            None if failure is None else {"check": failure.name, "target": failure.target}
        ),
        "summary": {
            "total": len(result.checks),
            "passed": result.passed_count,
            "failed": result.failed_count,
        },
        "duration_ms": result.total_duration_ms,
        "started_at": result.started_at.isoformat(),
        "finished_at": result.finished_at.isoformat() if result.finished_at else None,
        "checks": [_check_to_dict(check) for check in result.checks],
    }
    return json.dumps(data, indent=2 if pretty else None, default=str)


def print_result(
    result: VerificationResult,
    output_format: str = "table",
    console: Console | None = None,
) -> None:
    """Print results as ``"table"`` or ``"json"``.

    JSON is written to the console's file directly so Rich never rewraps or
    highlights it.
    """
    console = console or Console()
    if output_format != "json":
        format_result_table(result, console)
        return
    console.file.write(format_result_json(result) + "\n")
