"""Builders for synthetic .deb packages and on-disk mirrors."""

import bz2
import gzip
import io
import lzma
import os
import tarfile
from pathlib import Path

import zstandard

from constants import DistroProfile


class Symlink:
    def __init__(self, target: str):
        self.target = target


def make_data_tar(entries: dict, fmt: str = "xz") -> bytes:
    """A data.tar.<fmt> holding ``entries`` (name -> bytes or Symlink)."""
    raw = io.BytesIO()
    with tarfile.open(fileobj=raw, mode="w") as tar:
        for name, content in entries.items():
            info = tarfile.TarInfo(f"./{name}")
            if isinstance(content, Symlink):
                info.type = tarfile.SYMTYPE
                info.linkname = content.target
                tar.addfile(info)
            else:
                info.size = len(content)
                info.mode = 0o644
                tar.addfile(info, io.BytesIO(content))
    data = raw.getvalue()

    match fmt:
        case "xz":
            return lzma.compress(data)
        case "gz":
            return gzip.compress(data)
        case "bz2":
            return bz2.compress(data)
        case "zst":
            return zstandard.ZstdCompressor().compress(data)
    raise ValueError(fmt)


def write_ar(path: Path, members: list[tuple[str, bytes]]) -> Path:
    with open(path, "wb") as f:
        f.write(b"!<arch>\n")
        for name, data in members:
            header = f"{name:<16}{0:<12}{0:<6}{0:<6}{'100644':<8}{len(data):<10}`\n"
            f.write(header.encode("ascii"))
            f.write(data)
            if len(data) % 2:
                f.write(b"\n")
    return path


def make_deb(path: Path, entries: dict, fmt: str = "xz") -> Path:
    return write_ar(
        path,
        [
            ("debian-binary", b"2.0\n"),
            ("control.tar.xz", lzma.compress(b"")),
            (f"data.tar.{fmt}", make_data_tar(entries, fmt)),
        ],
    )


def make_mirror(root: Path, debs: dict[str, dict], codename="testing", arch="amd64", suffix="gz") -> str:
    """Lay out a mirror under ``root`` with one .deb per package; return its file:// URL."""
    stanzas = []
    for pkg, entries in debs.items():
        filename = f"pool/main/{pkg[0]}/{pkg}/{pkg}_1.0_{arch}.deb"
        deb = root / filename
        deb.parent.mkdir(parents=True, exist_ok=True)
        make_deb(deb, entries)
        stanzas.append(f"Package: {pkg}\nVersion: 1.0\nArchitecture: {arch}\nFilename: {filename}\n")

    index_text = "\n".join(stanzas).encode("utf-8")
    index_dir = root / "dists" / codename / "main" / f"binary-{arch}"
    index_dir.mkdir(parents=True, exist_ok=True)
    compress = {"gz": gzip.compress, "xz": lzma.compress}[suffix]
    (index_dir / f"Packages.{suffix}").write_bytes(compress(index_text))
    return root.as_uri()


def profile_for(mirror: str, codename="testing") -> DistroProfile:
    return DistroProfile("test-distro", codename, mirror, frozenset({"main"}), "amd64")


def snapshot(tree: Path) -> dict[str, tuple]:
    """Every entry under ``tree``: symlink targets, file contents, directories."""
    out = {}
    for dirpath, dirnames, filenames in os.walk(tree):
        for name in dirnames + filenames:
            p = Path(dirpath, name)
            rel = str(p.relative_to(tree))
            if p.is_symlink():
                out[rel] = ("link", os.readlink(p))
            elif p.is_dir():
                out[rel] = ("dir",)
            else:
                out[rel] = ("file", p.read_bytes())
    return out


LIBC6 = {
    "lib/x86_64-linux-gnu/libc.so.6": b"libc",
    "lib/x86_64-linux-gnu/libm.so.6": b"libm",
    "lib/x86_64-linux-gnu/ld-linux-x86-64.so.2": b"ld",
    "lib64/ld-linux-x86-64.so.2": Symlink("/lib/x86_64-linux-gnu/ld-linux-x86-64.so.2"),
}

LIBC6_DEV = {
    "usr/include/stdio.h": b"/* stdio */",
    "usr/lib/x86_64-linux-gnu/libm.so": Symlink("/lib/x86_64-linux-gnu/libm.so.6"),
    "usr/lib/x86_64-linux-gnu/libc.so": b"GROUP ( /lib/x86_64-linux-gnu/libc.so.6 )",
}

LINUX_LIBC_DEV = {
    "usr/include/linux/types.h": b"/* types */",
}
