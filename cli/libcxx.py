"""Building LLVM's C++ runtime (libunwind, libc++abi, libc++) against a sysroot.

The pre-built LLVM runtime libraries need glibc 2.34+; building them from
source against the target sysroot keeps them usable on older distributions.
"""

from dataclasses import replace
from pathlib import Path
import tarfile

from constants import LLVM_PROJECT_URL, LLVM_RUNTIME_SUBDIRS, WANT
from context import BuildContext
from fetching import fetch
from hermetic import run_command_with_progress, sez
from toolchain import ToolchainFlags, detect_llvm_root, prebuilt_cxx_libdir


def say(msg: str):
    sez(msg, ctx="(libcxx) ")


def llvm_source_dirname(version: str) -> str:
    return f"llvm-project-llvmorg-{version}"


def fetch_llvm_runtimes(bctx: BuildContext, version: str = WANT["libcxx"]) -> Path:
    """Download the llvm-project tarball and unpack just the runtime directories.

    That is about 50MB instead of the ~2GB of the full tree.
    """
    archive = bctx.source_dir / f"llvmorg-{version}.tar.gz"
    src_dir = bctx.build_dir / llvm_source_dirname(version)

    fetch(LLVM_PROJECT_URL.format(version=version), archive)

    if not (src_dir / "libcxx").is_dir():
        say("Extracting LLVM runtime sources (selective extraction)...")
        wanted = {f"{llvm_source_dirname(version)}/{sub}" for sub in LLVM_RUNTIME_SUBDIRS}

        def is_wanted(member: tarfile.TarInfo) -> bool:
            top_two = "/".join(member.name.split("/")[:2])
            return top_two in wanted

        bctx.build_dir.mkdir(parents=True, exist_ok=True)
        with tarfile.open(archive, "r:gz") as tar:
            members = [m for m in tar.getmembers() if is_wanted(m)]
            tar.extractall(path=bctx.build_dir, members=members, filter="tar")
        say("Extracted LLVM runtime sources")

    return src_dir


def bootstrap_flags(flags: ToolchainFlags, bctx: BuildContext, llvm_root: Path) -> ToolchainFlags:
    """Flags for building libc++ itself: it cannot be built with ``-stdlib=libc++``,
    nor linked against a pre-built libc++.
    """
    prebuilt = f"-L{prebuilt_cxx_libdir(bctx, llvm_root)}"
    return replace(
        flags,
        cxxflags=[f for f in flags.cxxflags if f != "-stdlib=libc++"],
        ldflags=[f for f in flags.ldflags if f not in ("-stdlib=libc++", prebuilt)],
    )


# CMake's C++ compiler check fails because there is no C++ stdlib yet.
SKIP_CXX_CHECK = "-DCMAKE_CXX_COMPILER_WORKS=ON"


def stage_args(bctx: BuildContext) -> list[tuple[str, list[str]]]:
    """The three runtime builds, in dependency order, with their CMake options."""
    include = bctx.prefix / "include"
    lib = bctx.prefix / "lib"
    return [
        (
            "libunwind",
            [
                SKIP_CXX_CHECK,
                "-DLIBUNWIND_ENABLE_SHARED=OFF",
                "-DLIBUNWIND_ENABLE_STATIC=ON",
                "-DLIBUNWIND_USE_COMPILER_RT=ON",
                "-DLIBUNWIND_INSTALL_HEADERS=ON",
            ],
        ),
        (
            "libcxxabi",
            [
                SKIP_CXX_CHECK,
                "-DLIBCXXABI_ENABLE_SHARED=OFF",
                "-DLIBCXXABI_ENABLE_STATIC=ON",
                "-DLIBCXXABI_USE_LLVM_UNWINDER=ON",
                "-DLIBCXXABI_USE_COMPILER_RT=ON",
                "-DLIBCXXABI_ENABLE_STATIC_UNWINDER=ON",
                "-DLIBCXXABI_STATICALLY_LINK_UNWINDER_IN_STATIC_LIBRARY=ON",
                f"-DLIBCXXABI_LIBUNWIND_INCLUDES={include}",
                "-DLIBCXXABI_INSTALL_HEADERS=ON",
            ],
        ),
        (
            "libcxx",
            [
                SKIP_CXX_CHECK,
                "-DLIBCXX_ENABLE_SHARED=OFF",
                "-DLIBCXX_ENABLE_STATIC=ON",
                "-DLIBCXX_CXX_ABI=libcxxabi",
                "-DLIBCXX_USE_COMPILER_RT=ON",
                "-DLIBCXX_ENABLE_STATIC_ABI_LIBRARY=ON",
                "-DLIBCXX_STATICALLY_LINK_ABI_IN_STATIC_LIBRARY=ON",
                f"-DLIBCXX_CXX_ABI_INCLUDE_PATHS={include}",
                f"-DLIBCXX_CXX_ABI_LIBRARY_PATH={lib}",
                "-DLIBCXX_INCLUDE_TESTS=OFF",
                "-DLIBCXX_INCLUDE_BENCHMARKS=OFF",
                "-DLIBCXX_INSTALL_HEADERS=ON",
            ],
        ),
    ]


def build_cmake(src_dir: Path, cmake_args: list[str], bctx: BuildContext, flags: ToolchainFlags) -> None:
    build_dir = src_dir / "build"
    build_dir.mkdir(parents=True, exist_ok=True)
    logs = bctx.build_dir / "logs"
    env_ext = flags.env(bctx)

    steps = [
        (
            "configure",
            [
                "cmake",
                "-S",
                str(src_dir),
                "-B",
                str(build_dir),
                *flags.cmake_args(bctx),
                "-DCMAKE_BUILD_TYPE=Release",
                "-DBUILD_SHARED_LIBS=OFF",
                *cmake_args,
            ],
        ),
        ("build", ["cmake", "--build", str(build_dir), "-j", str(bctx.jobs)]),
        ("install", ["cmake", "--install", str(build_dir)]),
    ]
    for step, cmd in steps:
        stem = f"{src_dir.name}-{step}"
        run_command_with_progress(
            cmd, logs / f"{stem}.out", logs / f"{stem}.err", bctx=bctx, env_ext=env_ext, cwd=build_dir
        )


def build_libcxx(bctx: BuildContext, version: str = WANT["libcxx"]) -> None:
    llvm_root = detect_llvm_root(bctx)
    flags = bootstrap_flags(ToolchainFlags.for_context(bctx, llvm_root), bctx, llvm_root)
    src_dir = fetch_llvm_runtimes(bctx, version)

    for subdir, cmake_args in stage_args(bctx):
        say(f"Building {subdir}...")
        build_cmake(src_dir / subdir, cmake_args, bctx, flags)
