"""Assembling a sysroot from .deb packages and repairing it for use by clang/lld."""

from pathlib import Path
import os
import shutil
from typing import Sequence

from constants import ArchInfo, SYSROOT_PACKAGES
from context import BuildContext
from debextract import extract_deb
from errors import FilesystemError
from fetching import fetch
from hermetic import sez
import package_index


def say(msg: str, err=False):
    sez(msg, ctx="(sysroot) ", err=err)


def assemble(bctx: BuildContext, packages: Sequence[str] = SYSROOT_PACKAGES) -> Path:
    """Fetch and unpack ``packages`` into the sysroot, then normalize it.

    Packages missing from the index are skipped with a warning. When two
    packages ship the same path, the one extracted last wins.
    """
    profile = bctx.profile
    sysroot = bctx.sysroot
    say(f"Setting up sysroot for {profile.id} (arch: {bctx.arch})")

    try:
        sysroot.mkdir(parents=True, exist_ok=True)
        bctx.cache_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Cannot create sysroot or cache directory: {e}") from e

    for pkg in packages:
        filename = package_index.resolve_download_path(
            profile.mirror, profile.codename, bctx.arch_info.debian_arch, pkg, bctx.index_cache
        )
        if filename is None:
            say(f"Package {pkg} not found, skipping", err=True)
            continue

        url = f"{profile.mirror.rstrip('/')}/{filename}"
        deb = bctx.cache_dir / os.path.basename(filename)
        fetch(url, deb)
        extract_deb(deb, sysroot)

    try:
        for sub in ("usr/lib", "usr/include", "usr/bin"):
            (sysroot / sub).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Cannot create the base layout of {sysroot}: {e}") from e

    say("Normalizing sysroot layout...")
    normalize_layout(sysroot, bctx.arch_info)
    return sysroot


def find_symlinks(sysroot: Path) -> list[Path]:
    links = []
    # Symlinks to directories show up in dirnames; os.walk doesn't descend into them.
    for dirpath, dirnames, filenames in os.walk(sysroot):
        for name in dirnames + filenames:
            p = Path(dirpath, name)
            if p.is_symlink():
                links.append(p)
    return links


def rerooted_target(link: Path, target: str, sysroot: Path) -> str:
    """For an absolute ``target``, the equivalent target relative to ``link``'s directory."""
    rel_sysroot = os.path.relpath(sysroot, link.parent)
    return rel_sysroot + target


def normalize_links(sysroot: Path) -> int:
    """Rewrite every absolute symlink under ``sysroot`` to point within it.

    A link ``usr/lib/x/libm.so -> /lib/x/libm.so.6`` becomes
    ``../../../lib/x/libm.so.6``. Relative links are left alone. Returns the
    number of links rewritten.
    """
    rewritten = 0
    for link in find_symlinks(sysroot):
        target = os.readlink(link)
        if not target.startswith("/"):
            continue
        new_target = rerooted_target(link, target, sysroot)
        try:
            link.unlink()
            os.symlink(new_target, link)
        except OSError as e:
            raise FilesystemError(f"Cannot rewrite symlink {link}: {e}") from e
        rewritten += 1
    return rewritten


def merge_tree(src: Path, dst: Path) -> int:
    """Copy ``src`` into ``dst`` like ``cp -a src/* dst/``, skipping entries that fail.

    Returns the number of entries that could not be copied.
    """
    failures = 0
    dst.mkdir(parents=True, exist_ok=True)
    for entry in src.iterdir():
        target = dst / entry.name
        try:
            if entry.is_dir() and not entry.is_symlink():
                if target.is_symlink() or (target.exists() and not target.is_dir()):
                    target.unlink()
                failures += merge_tree(entry, target)
                continue
            if target.is_dir() and not target.is_symlink():
                say(f"Could not copy {entry} to {target}: a directory is in the way", err=True)
                failures += 1
                continue
            if target.is_symlink() or target.is_file():
                target.unlink()
            shutil.copy2(entry, target, follow_symlinks=False)
        except OSError as e:
            say(f"Could not copy {entry} to {target}: {e}", err=True)
            failures += 1
    return failures


def merge_usr_dir(sysroot: Path, name: str) -> None:
    top = sysroot / name
    usr = sysroot / "usr" / name

    if top.is_dir() and not top.is_symlink():
        merge_tree(top, usr)
        shutil.rmtree(top)

    if not top.exists() and not top.is_symlink():
        os.symlink(f"usr/{name}", top)


def merge_usr_layout(sysroot: Path) -> None:
    try:
        (sysroot / "usr" / "lib64").mkdir(parents=True, exist_ok=True)
        for name in ("lib64", "lib"):
            merge_usr_dir(sysroot, name)
    except OSError as e:
        raise FilesystemError(f"Cannot normalize layout of {sysroot}: {e}") from e


def normalize_layout(sysroot: Path, arch: ArchInfo) -> None:
    """Move ``lib`` and ``lib64`` under ``usr`` (merged-usr), re-root absolute
    symlinks and link the dynamic linker.

    Symlinks are re-rooted after the merge so their relative targets are
    computed at their final depth; a re-run, which extracts through the
    ``lib -> usr/lib`` links, then produces the same targets.
    """
    merge_usr_layout(sysroot)
    say("Fixing symlinks...")
    normalize_links(sysroot)
    ensure_dynamic_linker(sysroot, arch)


def ensure_dynamic_linker(sysroot: Path, arch: ArchInfo) -> Path | None:
    """Make ``usr/lib64/<ld>`` point at the dynamic linker, if the sysroot has one.

    glibc's libc.so linker script names the dynamic linker by absolute path,
    e.g. /lib64/ld-linux-x86-64.so.2, and lld resolves it under the sysroot.
    """
    rel = Path(arch.triple) / arch.dynamic_linker
    candidates = [sysroot / "usr" / "lib" / rel, sysroot / "lib" / rel]
    if not any(c.is_file() for c in candidates):
        return None

    link = sysroot / "usr" / "lib64" / arch.dynamic_linker
    try:
        if link.is_symlink() or link.exists():
            link.unlink()
        os.symlink(Path("..", "lib") / rel, link)
    except OSError as e:
        raise FilesystemError(f"Cannot link dynamic linker at {link}: {e}") from e
    return link
