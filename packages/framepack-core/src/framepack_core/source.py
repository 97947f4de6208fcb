"""Native source acquisition.

Makes sure the pinned native source tree is present before compilation:

1. An existing tree with a CMakeLists.txt is used as is.
2. Otherwise, a configured repository is cloned and the pinned ref checked out.
3. Otherwise, if the tree lives inside a git superproject, its submodules
   are initialized.

Anything else is a SourceError, reported before compilation starts.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

from framepack_core.errors import SourceError
from framepack_core.schemas.pipeline_spec import SourceConfig
from framepack_core.toolchain.runner import ToolError, ToolRunner

logger = structlog.get_logger(__name__)

CMAKE_LISTS = "CMakeLists.txt"


@dataclass(frozen=True)
class SourceTree:
    """A native source tree ready to configure.

    Attributes:
        path: Tree root containing CMakeLists.txt.
        ref: Pinned tag or commit from the configuration.
        commit: Commit checked out, when the tree is a git checkout.
    """

    path: Path
    ref: str | None = None
    commit: str | None = None

    @property
    def cmake_lists(self) -> Path:
        return self.path / CMAKE_LISTS


class SourceAcquirer:
    """Locates or fetches the native source tree.

    Example:
        >>> acquirer = SourceAcquirer(ToolRunner())
        >>> tree = acquirer.ensure(spec.source)
        >>> tree.cmake_lists.exists()
        True
    """

    def __init__(self, runner: ToolRunner | None = None) -> None:
        self.runner = runner or ToolRunner()
        self._log = logger.bind(component="source")

    @staticmethod
    def is_present(source: SourceConfig) -> bool:
        """Whether the tree already has a CMakeLists.txt."""
        return (source.path / CMAKE_LISTS).is_file()

    def needs_git(self, source: SourceConfig) -> bool:
        """Whether acquiring the tree will invoke git."""
        return not self.is_present(source)

    def ensure(self, source: SourceConfig) -> SourceTree:
        """Make the source tree available.

        Args:
            source: Source configuration.

        Returns:
            SourceTree pointing at the ready-to-configure tree.

        Raises:
            SourceError: If the tree cannot be located or fetched.
        """
        path = source.path
        self._log.info("source_acquisition_started", path=str(path), ref=source.ref)

        if self.is_present(source):
            self._log.info("source_present", path=str(path))
            return SourceTree(path=path, ref=source.ref, commit=self._head_commit(path))

        if source.repository:
            self._clone(source)
        else:
            self._update_submodules(path)

        if not self.is_present(source):
            raise SourceError(f"No {CMAKE_LISTS} found in source tree {path}")

        tree = SourceTree(path=path, ref=source.ref, commit=self._head_commit(path))
        self._log.info("source_ready", path=str(path), commit=tree.commit)
        return tree

    def _clone(self, source: SourceConfig) -> None:
        path = source.path
        if path.exists() and any(path.iterdir()):
            raise SourceError(
                f"Source path {path} exists but has no {CMAKE_LISTS}; refusing to clone over it"
            )

        path.parent.mkdir(parents=True, exist_ok=True)
        self._git(["clone", str(source.repository), str(path)], f"Failed to clone {source.repository}")
        if source.ref:
            self._git(
                ["-C", str(path), "checkout", "--detach", source.ref],
                f"Failed to check out ref '{source.ref}'",
            )
        self._log.info("source_cloned", repository=source.repository, ref=source.ref)

    def _update_submodules(self, path: Path) -> None:
        anchor = _nearest_existing(path)
        toplevel = self.runner.run(
            ["git", "-C", str(anchor), "rev-parse", "--show-toplevel"],
            check=False,
        )
        if not toplevel.ok or not toplevel.stdout.strip():
            raise SourceError(
                f"Source tree {path} is missing and no repository is configured"
            )

        root = toplevel.stdout.strip()
        self._git(
            ["-C", root, "submodule", "update", "--init", "--recursive"],
            "Failed to initialize git submodules",
        )
        self._log.info("submodules_updated", superproject=root)

    def _head_commit(self, path: Path) -> str | None:
        if not (path / ".git").exists():
            return None
        try:
            result = self.runner.run(["git", "-C", str(path), "rev-parse", "HEAD"], check=False)
        except ToolError as e:
            # git is only required when the tree must be fetched
            self._log.warning("source_commit_unknown", path=str(path), error=e.diagnostic)
            return None
        if not result.ok:
            return None
        return result.stdout.strip() or None

    def _git(self, args: list[str], message: str) -> None:
        try:
            self.runner.run(["git", *args])
        except ToolError as e:
            raise SourceError(message, internal_details=e.diagnostic) from e


def _nearest_existing(path: Path) -> Path:
    for candidate in (path, *path.parents):
        if candidate.exists():
            return candidate
    return Path.cwd()
