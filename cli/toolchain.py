"""Compiler flags for cross builds, and the Meson cross file that records them."""

from dataclasses import dataclass
from pathlib import Path
import shutil
import textwrap

from context import BuildContext
from errors import ProvisioningError
from hermetic import sez


def detect_llvm_root(bctx: BuildContext) -> Path:
    """LLVM_ROOT if given, else /opt/llvm, else the install prefix of ``clang`` on PATH."""
    if bctx.llvm_root is not None:
        return bctx.llvm_root
    if Path("/opt/llvm").is_dir():
        return Path("/opt/llvm")

    clang_path = shutil.which("clang")
    if clang_path is None:
        raise ProvisioningError("clang not found")
    return Path(clang_path).resolve().parent.parent


@dataclass(frozen=True)
class ToolchainFlags:
    cc: str
    cxx: str
    cflags: list[str]
    cxxflags: list[str]
    ldflags: list[str]

    @classmethod
    def for_context(cls, bctx: BuildContext, llvm_root: Path) -> "ToolchainFlags":
        triple = bctx.target_triple

        # Prefer the prefix's libc++ (built from source) over LLVM_ROOT's pre-built one.
        if (bctx.prefix / "lib" / "libc++.a").is_file():
            cxx_libdir = bctx.prefix / "lib"
        else:
            cxx_libdir = prebuilt_cxx_libdir(bctx, llvm_root)

        common = [
            f"--target={triple}",
            f"--sysroot={bctx.sysroot}",
            "-O2",
            "-fPIC",
            f"-I{bctx.prefix / 'include'}",
        ]
        cflags = list(common)
        cxxflags = [*common, "-stdlib=libc++"]
        # lld and compiler-rt keep the GCC runtime out of the picture.
        ldflags = [
            f"--target={triple}",
            f"--sysroot={bctx.sysroot}",
            "-fuse-ld=lld",
            "-rtlib=compiler-rt",
            "-stdlib=libc++",
            f"-L{cxx_libdir}",
            f"-L{bctx.prefix / 'lib'}",
        ]
        return cls("clang", "clang++", cflags, cxxflags, ldflags)

    def cmake_args(self, bctx: BuildContext) -> list[str]:
        ldflags = " ".join(self.ldflags)
        return [
            f"-DCMAKE_C_COMPILER={self.cc}",
            f"-DCMAKE_CXX_COMPILER={self.cxx}",
            f"-DCMAKE_C_FLAGS={' '.join(self.cflags)}",
            f"-DCMAKE_CXX_FLAGS={' '.join(self.cxxflags)}",
            f"-DCMAKE_EXE_LINKER_FLAGS={ldflags}",
            f"-DCMAKE_SHARED_LINKER_FLAGS={ldflags}",
            f"-DCMAKE_SYSROOT={bctx.sysroot}",
            f"-DCMAKE_FIND_ROOT_PATH={bctx.prefix};{bctx.sysroot}",
            "-DCMAKE_FIND_ROOT_PATH_MODE_PROGRAM=NEVER",
            "-DCMAKE_FIND_ROOT_PATH_MODE_LIBRARY=ONLY",
            "-DCMAKE_FIND_ROOT_PATH_MODE_INCLUDE=ONLY",
            f"-DCMAKE_INSTALL_PREFIX={bctx.prefix}",
        ]

    def env(self, bctx: BuildContext) -> dict[str, str]:
        return {
            "CC": self.cc,
            "CXX": self.cxx,
            "CFLAGS": " ".join(self.cflags),
            "CXXFLAGS": " ".join(self.cxxflags),
            "LDFLAGS": " ".join(self.ldflags),
            "PKG_CONFIG_PATH": f"{bctx.prefix / 'lib' / 'pkgconfig'}:{bctx.prefix / 'share' / 'pkgconfig'}",
            "PKG_CONFIG_SYSROOT_DIR": str(bctx.sysroot),
        }


def prebuilt_cxx_libdir(bctx: BuildContext, llvm_root: Path) -> Path:
    return llvm_root / "lib" / f"{bctx.arch_info.cpu}-unknown-linux-gnu"


def render_meson_cross_file(bctx: BuildContext) -> str:
    sysroot = bctx.sysroot
    include = bctx.prefix / "include"
    lib = bctx.prefix / "lib"
    arch = bctx.arch_info
    return textwrap.dedent(f"""\
        [binaries]
        c = 'clang'
        cpp = 'clang++'
        ar = 'llvm-ar'
        strip = 'llvm-strip'
        pkg-config = 'pkg-config'

        [built-in options]
        c_args = ['--sysroot={sysroot}', '-I{include}']
        cpp_args = ['--sysroot={sysroot}', '-I{include}']
        c_link_args = ['--sysroot={sysroot}', '-L{lib}']
        cpp_link_args = ['--sysroot={sysroot}', '-L{lib}']

        [properties]
        sys_root = '{sysroot}'
        pkg_config_libdir = '{lib / 'pkgconfig'}'

        [host_machine]
        system = 'linux'
        cpu_family = '{arch.cpu_family}'
        cpu = '{arch.cpu}'
        endian = 'little'
        """)


def write_meson_cross_file(bctx: BuildContext) -> Path:
    cross_file = bctx.cross_file
    cross_file.parent.mkdir(parents=True, exist_ok=True)
    with open(cross_file, "w", encoding="utf-8") as f:
        f.write(render_meson_cross_file(bctx))
    sez(f"Generated Meson cross file: {cross_file}", ctx="(toolchain) ")
    return cross_file
