"""Shared test fixtures for framepack-cli tests.

Provides CliRunner fixtures, framepack.yaml fixtures, and a helper that
writes a minimal package manifest to disk.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path
import sys

from click.testing import CliRunner
import pytest
import structlog

from framepack_core.bundle import write_plist

# File name constants
FRAMEPACK_YAML_FILENAME = "framepack.yaml"


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner.

    Returns:
        CliRunner instance for testing CLI commands.
    """
    return CliRunner()


@pytest.fixture
def isolated_runner(cli_runner: CliRunner) -> Generator[CliRunner, None, None]:
    """Create a Click test runner with an isolated filesystem.

    Yields:
        CliRunner instance with isolated filesystem.
    """
    with cli_runner.isolated_filesystem():
        yield cli_runner


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def valid_framepack_yaml(fixtures_dir: Path, tmp_path: Path) -> Path:
    """Copy the valid framepack.yaml fixture into tmp_path.

    Returns:
        Path to framepack.yaml in tmp_path.
    """
    dest = tmp_path / FRAMEPACK_YAML_FILENAME
    dest.write_text((fixtures_dir / "valid_framepack.yaml").read_text())
    return dest


@pytest.fixture
def invalid_framepack_yaml(fixtures_dir: Path) -> Path:
    """Return the path to an invalid framepack.yaml fixture."""
    return fixtures_dir / "invalid_framepack.yaml"


@pytest.fixture
def make_package_dir(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a package directory with a manifest and empty bundles."""

    def _make(
        identifiers: tuple[str, ...] = ("ios-arm64", "ios-arm64_x86_64-simulator"),
        name: str = "h3",
    ) -> Path:
        path = tmp_path / f"{name}.xcframework"
        libraries = []
        for identifier in identifiers:
            archs = ["arm64", "x86_64"] if "x86_64" in identifier else ["arm64"]
            library = {
                "BinaryPath": f"{name}.framework/{name}",
                "LibraryIdentifier": identifier,
                "LibraryPath": f"{name}.framework",
                "SupportedArchitectures": archs,
                "SupportedPlatform": identifier.split("-")[0],
            }
            if identifier.endswith("-simulator"):
                library["SupportedPlatformVariant"] = "simulator"
            libraries.append(library)
            (path / identifier / f"{name}.framework").mkdir(parents=True)
        write_plist(
            path / "Info.plist",
            {
                "AvailableLibraries": libraries,
                "CFBundlePackageType": "XFWK",
                "XCFrameworkFormatVersion": "1.0",
            },
        )
        return path

    return _make
