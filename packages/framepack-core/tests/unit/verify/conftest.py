"""Fixtures for verification tests: a packaged, signed, relocatable h3."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from framepack_core.bundle import FrameworkBundle, layout_for, write_plist
from framepack_core.packager import MultiPlatformPackage, MultiPlatformPackager
from framepack_core.schemas import PipelineSpec, default_targets

SYMBOLS = ("cellToLatLng", "degsToRads", "latLngToCell")


@pytest.fixture
def make_package(
    tmp_path: Path,
    make_spec: Callable[..., PipelineSpec],
    fake_binary: Callable[..., Path],
) -> Callable[..., MultiPlatformPackage]:
    """Factory for a package whose binaries pass every check by default.

    Keyword overrides apply to the binary of ``broken`` only.
    """

    def _make(broken: str | None = None, **overrides: Any) -> MultiPlatformPackage:
        spec = make_spec()
        bundles = []
        for target in default_targets():
            root = tmp_path / "bundles" / target.identifier / "h3.framework"
            layout = layout_for(target, root, "h3")
            layout.create_skeleton()
            binary: dict[str, Any] = {
                "archs": target.sorted_architectures,
                "symbols": SYMBOLS,
                "install_name": layout.install_name,
                "signature": {"kind": "adhoc", "identifier": "h3"},
            }
            if target.identifier == broken:
                binary.update(overrides)
            fake_binary(layout.binary_path.name, directory=layout.content_dir, **binary)
            write_plist(layout.info_plist_path, {"CFBundleExecutable": "h3"})
            layout.link_current_version()
            bundles.append(FrameworkBundle(target=target, layout=layout))

        return MultiPlatformPackager(spec, staging_dir=tmp_path / "stage").package(bundles)

    return _make
