"""Tests for framepack build command."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

from click.testing import CliRunner
import pytest

from framepack_cli.commands.build import build
from framepack_core import Linkage
from framepack_core.errors import BuildEnvironmentError, VerificationError
from framepack_core.packager import MultiPlatformPackage, PackageEntry


@pytest.fixture
def pipeline_result(tmp_path: Path) -> MagicMock:
    """PipelineResult stand-in for a two-target package."""
    package = MultiPlatformPackage(
        path=tmp_path / "darwin" / "Libs" / "h3.xcframework",
        framework_name="h3",
        entries=(
            PackageEntry(
                identifier="ios-arm64",
                library_path="h3.framework",
                binary_path="h3.framework/h3",
                architectures=("arm64",),
                platform="ios",
            ),
            PackageEntry(
                identifier="ios-arm64_x86_64-simulator",
                library_path="h3.framework",
                binary_path="h3.framework/h3",
                architectures=("arm64", "x86_64"),
                platform="ios",
                variant="simulator",
            ),
        ),
    )
    result = MagicMock()
    result.package = package
    result.duration_ms = 1234
    result.binary_sizes.return_value = {
        "ios-arm64": 180_000,
        "ios-arm64_x86_64-simulator": 360_000,
    }
    return result


@pytest.fixture
def mock_pipeline(pipeline_result: MagicMock) -> Iterator[MagicMock]:
    """Patch Pipeline and logging setup used by the build command."""
    with (
        patch("framepack_core.Pipeline") as pipeline_cls,
        patch("framepack_core.configure_logging") as configure_logging,
    ):
        pipeline_cls.return_value.run.return_value = pipeline_result
        pipeline_cls.configure_logging = configure_logging
        yield pipeline_cls


class TestBuildCommand:
    """Tests for build command."""

    @pytest.mark.requirement("FR-028")
    @pytest.mark.requirement("FR-029")
    def test_build_prints_summary(
        self, cli_runner: CliRunner, valid_framepack_yaml: Path, mock_pipeline: MagicMock
    ) -> None:
        result = cli_runner.invoke(build, ["--file", str(valid_framepack_yaml)])

        assert result.exit_code == 0, result.output
        assert "Building h3 for 3 target(s)" in result.output
        assert "ios-arm64_x86_64-simulator" in result.output
        assert "351.6 KiB" in result.output
        assert "Package written to" in result.output
        mock_pipeline.return_value.run.assert_called_once_with(keep_build=False)

    @pytest.mark.requirement("FR-028")
    def test_overrides(
        self,
        cli_runner: CliRunner,
        tmp_path: Path,
        valid_framepack_yaml: Path,
        mock_pipeline: MagicMock,
    ) -> None:
        """Command-line options override the configured values."""
        result = cli_runner.invoke(
            build,
            [
                "--file",
                str(valid_framepack_yaml),
                "--target",
                "ios-arm64",
                "--linkage",
                "static",
                "--output",
                str(tmp_path / "out"),
                "--keep-build",
            ],
        )

        assert result.exit_code == 0, result.output
        spec = mock_pipeline.call_args.args[0]
        assert spec.target_ids == ("ios-arm64",)
        assert spec.linkage is Linkage.STATIC
        assert spec.output == (tmp_path / "out").resolve()
        mock_pipeline.return_value.run.assert_called_once_with(keep_build=True)

    @pytest.mark.requirement("FR-029")
    def test_output_inside_build_dir_rejected(
        self,
        cli_runner: CliRunner,
        tmp_path: Path,
        valid_framepack_yaml: Path,
        mock_pipeline: MagicMock,
    ) -> None:
        """An --output the build cleanup would delete is refused before building."""
        result = cli_runner.invoke(
            build,
            ["--file", str(valid_framepack_yaml), "--output", str(tmp_path / "build" / "out")],
        )

        assert result.exit_code == 1
        assert "Invalid options" in result.output
        assert "overlaps output" in " ".join(result.output.split())
        mock_pipeline.assert_not_called()

    @pytest.mark.requirement("FR-026")
    @pytest.mark.parametrize(
        ("flags", "level"),
        [([], "WARNING"), (["-v"], "INFO"), (["-vv"], "DEBUG")],
    )
    def test_verbosity(
        self,
        cli_runner: CliRunner,
        valid_framepack_yaml: Path,
        mock_pipeline: MagicMock,
        flags: list[str],
        level: str,
    ) -> None:
        cli_runner.invoke(build, ["--file", str(valid_framepack_yaml), "--json-logs", *flags])

        mock_pipeline.configure_logging.assert_called_once_with(log_level=level, json_format=True)

    @pytest.mark.requirement("FR-027")
    def test_unknown_target(
        self, cli_runner: CliRunner, valid_framepack_yaml: Path, mock_pipeline: MagicMock
    ) -> None:
        result = cli_runner.invoke(
            build, ["--file", str(valid_framepack_yaml), "--target", "tvos-arm64"]
        )

        assert result.exit_code == 1
        assert "Unknown target(s): tvos-arm64" in result.output
        mock_pipeline.assert_not_called()

    @pytest.mark.requirement("FR-027")
    def test_verification_failure_exit_1(
        self, cli_runner: CliRunner, valid_framepack_yaml: Path, mock_pipeline: MagicMock
    ) -> None:
        """A failed gate names the check and target."""
        mock_pipeline.return_value.run.side_effect = VerificationError(
            "symbol_export", "ios-arm64"
        )

        result = cli_runner.invoke(build, ["--file", str(valid_framepack_yaml)])

        assert result.exit_code == 1
        assert "symbol_export" in result.output
        assert "Package written" not in result.output

    @pytest.mark.requirement("FR-027")
    def test_environment_failure_exit_2(
        self, cli_runner: CliRunner, valid_framepack_yaml: Path, mock_pipeline: MagicMock
    ) -> None:
        mock_pipeline.return_value.run.side_effect = BuildEnvironmentError(
            missing_tools=["cmake"]
        )

        result = cli_runner.invoke(build, ["--file", str(valid_framepack_yaml)])

        assert result.exit_code == 2
        assert "Required tools not found: cmake" in result.output

    @pytest.mark.requirement("FR-002")
    def test_missing_config(
        self, cli_runner: CliRunner, tmp_path: Path, mock_pipeline: MagicMock
    ) -> None:
        result = cli_runner.invoke(build, ["--file", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 2
        mock_pipeline.assert_not_called()
