"""Shared pytest fixtures for framepack-core tests.

The Xcode tools are replaced by FakeToolRunner, which simulates cmake,
xcrun, lipo, nm, otool, install_name_tool, codesign and git against small
JSON "binaries" written under tmp_path. The whole pipeline can therefore be
exercised on any operating system.

A fake binary is a JSON document:

    {
        "type": "DYLIB" | "ARCHIVE",
        "archs": ["arm64", "x86_64"],
        "symbols": {"arm64": [...], "x86_64": [...]},
        "install_name": "@rpath/libh3.1.dylib" | null,
        "signature": {"kind": "adhoc", "identifier": "h3"} | null
    }
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

import pytest
import structlog

from framepack_core.schemas import BundleMetadata, PipelineSpec, PlatformTarget, SourceConfig
from framepack_core.toolchain import ToolError, ToolResult, ToolRunner, Toolchain

DEFAULT_SYMBOLS: tuple[str, ...] = ("cellToLatLng", "degsToRads", "latLngToCell", "radsToDegs")

COMPILER_DIAGNOSTIC = "h3lib/lib/latLng.c:42:5: error: use of undeclared identifier 'M_PI'"


def write_binary(path: Path, data: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, sort_keys=True))
    return path


def read_binary(path: Path) -> dict[str, Any]:
    return json.loads(Path(path).read_text())


class FakeToolRunner(ToolRunner):
    """In-memory stand-in for the Xcode and CMake command-line tools.

    Attributes:
        calls: Every command line run, in order.
    """

    def __init__(
        self,
        *,
        library: str = "h3",
        symbols: Sequence[str] = DEFAULT_SYMBOLS,
        symbol_overrides: dict[str, Sequence[str]] | None = None,
        fail_build: Iterable[str] = (),
        fail_sign: bool = False,
        missing_sdks: Iterable[str] = (),
        superproject: Path | None = None,
        submodules: Iterable[Path] = (),
    ) -> None:
        """Initialize the fake.

        Args:
            library: Library name CMake installs.
            symbols: Symbols every compiled slice exports.
            symbol_overrides: Per "<sdk>:<arch>" symbol lists.
            fail_build: "<sdk>" or "<sdk>:<arch>" keys whose build fails.
            fail_sign: Make every codesign --sign call fail.
            missing_sdks: SDK names xcrun cannot locate.
            superproject: Root reported by ``git rev-parse --show-toplevel``.
            submodules: Paths populated by ``git submodule update``.
        """
        super().__init__()
        self.library = library
        self.symbols = list(symbols)
        self.symbol_overrides = {k: list(v) for k, v in (symbol_overrides or {}).items()}
        self.fail_build = set(fail_build)
        self.fail_sign = fail_sign
        self.missing_sdks = set(missing_sdks)
        self.superproject = superproject
        self.submodules = list(submodules)
        self.calls: list[tuple[str, ...]] = []

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Any = None,
        check: bool = True,
    ) -> ToolResult:
        command = tuple(str(a) for a in args)
        self.calls.append(command)
        handler: Callable[[tuple[str, ...]], tuple[int, str, str]] = getattr(
            self, f"_tool_{command[0]}"
        )
        returncode, stdout, stderr = handler(command[1:])
        result = ToolResult(args=command, returncode=returncode, stdout=stdout, stderr=stderr)
        if check and returncode != 0:
            raise ToolError(command, returncode, stdout=stdout, stderr=stderr)
        return result

    def calls_to(self, tool: str) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[0] == tool]

    # xcrun

    def _tool_xcrun(self, args: tuple[str, ...]) -> tuple[int, str, str]:
        sdk = args[args.index("--sdk") + 1]
        if sdk in self.missing_sdks:
            return 1, "", f'xcrun: error: SDK "{sdk}" cannot be located'
        return 0, f"/fake/Xcode/SDKs/{sdk}.sdk\n", ""

    # cmake

    def _tool_cmake(self, args: tuple[str, ...]) -> tuple[int, str, str]:
        if args[0] == "-S":
            return self._cmake_configure(args)
        build_dir = Path(args[1])
        cache = json.loads((build_dir / "fake_cache.json").read_text())
        if args[0] == "--build":
            return self._cmake_build(cache)
        if args[0] == "--install":
            return self._cmake_install(cache)
        return 1, "", f"CMake Error: unknown arguments {args}"

    def _cmake_configure(self, args: tuple[str, ...]) -> tuple[int, str, str]:
        source = Path(args[args.index("-S") + 1])
        build_dir = Path(args[args.index("-B") + 1])
        if not (source / "CMakeLists.txt").exists():
            return 1, "", f"CMake Error: The source directory {source} does not contain CMakeLists.txt"
        defines = {}
        for arg in args:
            if arg.startswith("-D"):
                key, _, value = arg[2:].partition("=")
                defines[key] = value
        build_dir.mkdir(parents=True, exist_ok=True)
        (build_dir / "fake_cache.json").write_text(
            json.dumps({"source": str(source), "defines": defines})
        )
        return 0, "-- Configuring done\n-- Generating done\n", ""

    @staticmethod
    def _slice_key(cache: dict[str, Any]) -> tuple[str, str]:
        defines = cache["defines"]
        sdk = Path(defines["CMAKE_OSX_SYSROOT"]).stem
        return sdk, defines["CMAKE_OSX_ARCHITECTURES"]

    def _cmake_build(self, cache: dict[str, Any]) -> tuple[int, str, str]:
        sdk, arch = self._slice_key(cache)
        if sdk in self.fail_build or f"{sdk}:{arch}" in self.fail_build:
            return 2, "[ 12%] Building C object", f"{cache['source']}/{COMPILER_DIAGNOSTIC}"
        return 0, "[100%] Built target h3\n", ""

    def _cmake_install(self, cache: dict[str, Any]) -> tuple[int, str, str]:
        sdk, arch = self._slice_key(cache)
        defines = cache["defines"]
        prefix = Path(defines["CMAKE_INSTALL_PREFIX"])
        shared = defines.get("BUILD_SHARED_LIBS") == "ON"
        symbols = self.symbol_overrides.get(f"{sdk}:{arch}", self.symbols)

        header = prefix / "include" / self.library / "h3api.h"
        header.parent.mkdir(parents=True, exist_ok=True)
        header.write_text("/* public API */\n")

        lib_dir = prefix / "lib"
        if shared:
            real = lib_dir / f"lib{self.library}.1.dylib"
            name_dir = defines.get("CMAKE_INSTALL_NAME_DIR") or str(lib_dir)
            write_binary(
                real,
                {
                    "type": "DYLIB",
                    "archs": [arch],
                    "symbols": {arch: sorted(symbols)},
                    "install_name": f"{name_dir}/{real.name}",
                    "signature": None,
                },
            )
            link = lib_dir / f"lib{self.library}.dylib"
            if link.is_symlink() or link.exists():
                link.unlink()
            link.symlink_to(real.name)
        else:
            write_binary(
                lib_dir / f"lib{self.library}.a",
                {
                    "type": "ARCHIVE",
                    "archs": [arch],
                    "symbols": {arch: sorted(symbols)},
                    "install_name": None,
                    "signature": None,
                },
            )
        return 0, f"-- Installing: {lib_dir}\n", ""

    # lipo

    def _tool_lipo(self, args: tuple[str, ...]) -> tuple[int, str, str]:
        if args[0] == "-archs":
            return 0, " ".join(read_binary(Path(args[1]))["archs"]) + "\n", ""
        if args[0] == "-create":
            output = Path(args[args.index("-output") + 1])
            inputs = [Path(a) for a in args[1 : args.index("-output")]]
            merged: dict[str, Any] | None = None
            for path in inputs:
                data = read_binary(path)
                if merged is None:
                    merged = {**data, "archs": list(data["archs"]), "symbols": dict(data["symbols"])}
                    merged["signature"] = None
                    continue
                overlap = set(merged["archs"]) & set(data["archs"])
                if overlap:
                    return 1, "", (
                        f"fatal error: lipo: {path} and {inputs[0]} have the same "
                        f"architectures ({', '.join(sorted(overlap))})"
                    )
                merged["archs"] += data["archs"]
                merged["symbols"].update(data["symbols"])
            assert merged is not None
            write_binary(output, merged)
            return 0, "", ""
        return 1, "", f"fatal error: lipo: unknown flag {args[0]}"

    # nm

    def _tool_nm(self, args: tuple[str, ...]) -> tuple[int, str, str]:
        path = Path(args[-1])
        data = read_binary(path)
        archs = list(data["archs"])
        if "-arch" in args:
            arch = args[args.index("-arch") + 1]
            if arch not in archs:
                return 1, "", f"fatal error: nm: file: {path} does not contain architecture: {arch}"
            archs = [arch]

        lines: list[str] = []
        for arch in archs:
            if data["type"] == "ARCHIVE":
                lines.append(f"{path}(h3.c.o):")
            elif len(archs) > 1:
                lines.append(f"{path} (for architecture {arch}):")
            for i, symbol in enumerate(sorted(data["symbols"].get(arch, []))):
                lines.append(f"{0x1000 + i * 16:016x} T _{symbol}")
            lines.append("")
        return 0, "\n".join(lines), ""

    # otool

    def _tool_otool(self, args: tuple[str, ...]) -> tuple[int, str, str]:
        flag, path = args[0], Path(args[1])
        data = read_binary(path)
        header = "      magic  cputype cpusubtype  caps    filetype ncmds sizeofcmds      flags"

        if data["type"] == "ARCHIVE":
            lines = [f"Archive : {path}", f"{path}(h3.c.o):"]
            if flag == "-hv":
                lines += [
                    "Mach header",
                    header,
                    "MH_MAGIC_64    ARM64        ALL  0x00      OBJECT     4        664 SUBSECTIONS",
                ]
            return 0, "\n".join(lines) + "\n", ""

        lines = []
        for arch in data["archs"]:
            label = f"{path} (architecture {arch}):" if len(data["archs"]) > 1 else f"{path}:"
            lines.append(label)
            if flag == "-hv":
                cpu = "X86_64" if arch == "x86_64" else "ARM64"
                lines += [
                    "Mach header",
                    header,
                    f"MH_MAGIC_64    {cpu}        ALL  0x00       DYLIB    13       1048   NOUNDEFS",
                ]
            elif flag == "-D" and data.get("install_name"):
                lines.append(data["install_name"])
        return 0, "\n".join(lines) + "\n", ""

    # install_name_tool

    def _tool_install_name_tool(self, args: tuple[str, ...]) -> tuple[int, str, str]:
        name, path = args[args.index("-id") + 1], Path(args[-1])
        data = read_binary(path)
        if data["type"] != "DYLIB":
            return 1, "", (
                f"error: install_name_tool: input file: {path} is not a Mach-O file "
                "or a dynamic library"
            )
        data["install_name"] = name
        data["signature"] = None
        write_binary(path, data)
        return 0, "", ""

    # codesign

    def _tool_codesign(self, args: tuple[str, ...]) -> tuple[int, str, str]:
        path = Path(args[-1])
        if "--sign" in args:
            if self.fail_sign:
                return 1, "", f"{path}: errSecInternalComponent"
            identity = args[args.index("--sign") + 1]
            data = read_binary(path)
            data["signature"] = {
                "kind": "adhoc" if identity == "-" else identity,
                "identifier": path.name,
            }
            write_binary(path, data)
            return 0, "", ""

        data = read_binary(path)
        signature = data.get("signature")
        if not signature:
            return 1, "", f"{path}: code object is not signed at all"
        archs = " ".join(data["archs"])
        kind = "universal" if len(data["archs"]) > 1 else "thin"
        lines = [
            f"Executable={path}",
            f"Identifier={signature['identifier']}",
            f"Format=Mach-O {kind} ({archs})",
            "CodeDirectory v=20400 size=1234 flags=0x2(adhoc) hashes=30+2 location=embedded",
        ]
        if signature["kind"] == "adhoc":
            lines.append("Signature=adhoc")
        else:
            lines += [
                f"Authority={signature['kind']}",
                "Authority=Apple Worldwide Developer Relations Certification Authority",
                "Authority=Apple Root CA",
            ]
        lines.append("TeamIdentifier=not set")
        return 0, "", "\n".join(lines) + "\n"

    # git

    def _tool_git(self, args: tuple[str, ...]) -> tuple[int, str, str]:
        if args[0] == "clone":
            dest = Path(args[2])
            dest.mkdir(parents=True, exist_ok=True)
            (dest / ".git").mkdir(exist_ok=True)
            (dest / "CMakeLists.txt").write_text("project(h3 C)\n")
            return 0, "", f"Cloning into '{dest}'...\n"

        rest = args[2:] if args[0] == "-C" else args
        if rest[:2] == ("rev-parse", "--show-toplevel"):
            if self.superproject is None:
                return 128, "", "fatal: not a git repository (or any of the parent directories): .git"
            return 0, f"{self.superproject}\n", ""
        if rest[:2] == ("rev-parse", "HEAD"):
            return 0, "5b8bb0f2f8d1a7a2c6d3e9f04a1b2c3d4e5f6a7b\n", ""
        if rest[0] == "checkout":
            return 0, "", f"HEAD is now at 5b8bb0f {rest[-1]}\n"
        if rest[:2] == ("submodule", "update"):
            for path in self.submodules:
                path.mkdir(parents=True, exist_ok=True)
                (path / "CMakeLists.txt").write_text("project(h3 C)\n")
            return 0, "", ""
        return 1, "", f"git: '{rest[0]}' is not a git command"


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture
def fake_runner() -> FakeToolRunner:
    """FakeToolRunner with default behavior (every tool succeeds)."""
    return FakeToolRunner()


@pytest.fixture
def make_runner() -> Callable[..., FakeToolRunner]:
    """Factory for FakeToolRunner with custom behavior."""
    return FakeToolRunner


@pytest.fixture
def make_toolchain() -> Callable[..., Toolchain]:
    """Factory for a Toolchain whose tools are all "installed"."""

    def _make(runner: ToolRunner, missing: Iterable[str] = ()) -> Toolchain:
        absent = set(missing)
        return Toolchain(
            runner,
            which=lambda tool: None if tool in absent else f"/usr/bin/{tool}",
        )

    return _make


@pytest.fixture
def toolchain(fake_runner: FakeToolRunner, make_toolchain: Callable[..., Toolchain]) -> Toolchain:
    return make_toolchain(fake_runner)


@pytest.fixture
def fake_binary(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a fake Mach-O binary."""

    def _make(
        name: str = "libh3.dylib",
        *,
        archs: Sequence[str] = ("arm64",),
        symbols: Sequence[str] = DEFAULT_SYMBOLS,
        kind: str = "DYLIB",
        install_name: str | None = "@rpath/libh3.1.dylib",
        signature: dict[str, str] | None = None,
        directory: Path | None = None,
    ) -> Path:
        return write_binary(
            (directory or tmp_path / "bin") / name,
            {
                "type": kind,
                "archs": list(archs),
                "symbols": {arch: sorted(symbols) for arch in archs},
                "install_name": install_name if kind == "DYLIB" else None,
                "signature": signature,
            },
        )

    return _make


@pytest.fixture
def load_binary() -> Callable[[Path], dict[str, Any]]:
    """Reader for fake binaries."""
    return read_binary


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """Native source tree with a CMakeLists.txt."""
    source = tmp_path / "src" / "h3"
    source.mkdir(parents=True)
    (source / "CMakeLists.txt").write_text("project(h3 C)\n")
    return source


@pytest.fixture
def metadata() -> BundleMetadata:
    return BundleMetadata(
        bundle_identifier="com.uber.h3",
        display_name="h3",
        version="4.2.1",
    )


@pytest.fixture
def make_spec(
    tmp_path: Path,
    source_dir: Path,
    metadata: BundleMetadata,
) -> Callable[..., PipelineSpec]:
    """Factory for PipelineSpec rooted under tmp_path."""

    def _make(
        targets: Sequence[PlatformTarget] | None = None,
        **overrides: Any,
    ) -> PipelineSpec:
        values: dict[str, Any] = {
            "library": "h3",
            "source": SourceConfig(path=source_dir, ref="v4.2.1"),
            "metadata": metadata,
            "smoke_symbol": "degsToRads",
            "ffi_symbols": ("latLngToCell", "cellToLatLng"),
            "output": tmp_path / "dist",
            "build_dir": tmp_path / "build",
        }
        if targets is not None:
            values["targets"] = tuple(targets)
        values.update(overrides)
        return PipelineSpec(**values)

    return _make


@pytest.fixture
def sample_framepack_yaml() -> dict[str, Any]:
    """Return a minimal valid framepack.yaml configuration."""
    return {
        "library": "h3",
        "source": {"path": "./c/h3", "ref": "v4.2.1"},
        "metadata": {
            "bundle_identifier": "com.uber.h3",
            "display_name": "h3",
            "version": "4.2.1",
        },
        "smoke_symbol": "degsToRads",
    }
