"""Unit tests for native source acquisition."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from framepack_core.errors import BuildEnvironmentError, SourceError
from framepack_core.schemas import SourceConfig
from framepack_core.source import SourceAcquirer
from framepack_core.toolchain import ToolRunner


class TestSourceAcquirer:
    """Tests for SourceAcquirer.ensure()."""

    @pytest.mark.requirement("FR-004")
    def test_existing_tree_used_as_is(self, fake_runner, source_dir: Path) -> None:
        """A tree with CMakeLists.txt needs no git."""
        source = SourceConfig(path=source_dir, ref="v4.2.1")
        acquirer = SourceAcquirer(fake_runner)

        tree = acquirer.ensure(source)

        assert tree.path == source_dir
        assert tree.cmake_lists.is_file()
        assert tree.commit is None
        assert not acquirer.needs_git(source)
        assert fake_runner.calls == []

    @pytest.mark.requirement("FR-004")
    def test_existing_checkout_records_commit(self, fake_runner, source_dir: Path) -> None:
        """A git checkout reports its HEAD commit."""
        (source_dir / ".git").mkdir()

        tree = SourceAcquirer(fake_runner).ensure(SourceConfig(path=source_dir, ref="v4.2.1"))

        assert tree.commit == "5b8bb0f2f8d1a7a2c6d3e9f04a1b2c3d4e5f6a7b"

    @pytest.mark.requirement("FR-004")
    def test_existing_checkout_without_git_installed(self, source_dir: Path) -> None:
        """A present submodule checkout builds on a host without git."""
        (source_dir / ".git").write_text("gitdir: ../../.git/modules/h3\n")
        source = SourceConfig(path=source_dir, ref="v4.2.1")
        acquirer = SourceAcquirer(ToolRunner())

        with patch(
            "framepack_core.toolchain.runner.subprocess.run",
            side_effect=FileNotFoundError(2, "No such file or directory", "git"),
        ) as run:
            tree = acquirer.ensure(source)

        assert not acquirer.needs_git(source)
        assert tree.cmake_lists.is_file()
        assert tree.commit is None
        run.assert_called_once()

    @pytest.mark.requirement("FR-004")
    def test_clone_and_checkout(self, fake_runner, tmp_path: Path) -> None:
        """A missing tree with a repository is cloned at the pinned ref."""
        path = tmp_path / "c" / "h3"
        source = SourceConfig(
            path=path, repository="https://github.com/uber/h3.git", ref="v4.2.1"
        )

        tree = SourceAcquirer(fake_runner).ensure(source)

        assert tree.cmake_lists.is_file()
        assert fake_runner.calls[0] == (
            "git",
            "clone",
            "https://github.com/uber/h3.git",
            str(path),
        )
        assert ("git", "-C", str(path), "checkout", "--detach", "v4.2.1") in fake_runner.calls

    @pytest.mark.requirement("FR-004")
    def test_refuses_to_clone_over_content(self, fake_runner, tmp_path: Path) -> None:
        """A non-empty directory without CMakeLists.txt is not overwritten."""
        path = tmp_path / "h3"
        path.mkdir()
        (path / "README.md").write_text("h3\n")
        source = SourceConfig(path=path, repository="https://github.com/uber/h3.git")

        with pytest.raises(SourceError, match="refusing to clone"):
            SourceAcquirer(fake_runner).ensure(source)
        assert fake_runner.calls == []

    @pytest.mark.requirement("FR-004")
    def test_submodule_update(self, make_runner: Callable[..., object], tmp_path: Path) -> None:
        """A tree inside a superproject is populated via git submodule update."""
        path = tmp_path / "repo" / "c" / "h3"
        path.parent.mkdir(parents=True)
        runner = make_runner(superproject=tmp_path / "repo", submodules=[path])

        tree = SourceAcquirer(runner).ensure(SourceConfig(path=path))

        assert tree.cmake_lists.is_file()
        assert (
            "git",
            "-C",
            str(tmp_path / "repo"),
            "submodule",
            "update",
            "--init",
            "--recursive",
        ) in runner.calls

    @pytest.mark.requirement("FR-004")
    def test_no_repository_no_superproject(self, fake_runner, tmp_path: Path) -> None:
        """Without a repository or superproject, acquisition fails up front."""
        source = SourceConfig(path=tmp_path / "missing" / "h3")

        with pytest.raises(SourceError, match="no repository is configured") as exc_info:
            SourceAcquirer(fake_runner).ensure(source)

        assert isinstance(exc_info.value, BuildEnvironmentError)

    @pytest.mark.requirement("FR-004")
    def test_submodule_without_cmake_lists(
        self, make_runner: Callable[..., object], tmp_path: Path
    ) -> None:
        """A submodule update that leaves no CMakeLists.txt is a SourceError."""
        path = tmp_path / "repo" / "c" / "h3"
        runner = make_runner(superproject=tmp_path / "repo")

        with pytest.raises(SourceError, match="No CMakeLists.txt found"):
            SourceAcquirer(runner).ensure(SourceConfig(path=path))
