"""Unpacking the data payload of binary .deb packages.

A .deb is an ``ar`` archive holding ``debian-binary``, a control tarball and a
``data.tar.<fmt>`` tarball with the files to install. Only the data tarball
matters for a sysroot.
"""

import gzip
import lzma
import os
from pathlib import Path
import tarfile
import tempfile
from typing import Callable
import zlib

import zstandard
from debian.arfile import ArError, ArFile

from constants import DATA_MEMBER_FORMATS
from errors import FilesystemError, UnsupportedFormat
from hermetic import sez


def replacing_stale_links(member: tarfile.TarInfo, dest_path: str) -> tarfile.TarInfo | None:
    """The ``tar`` extraction filter, after removing symlinks the member would go through.

    A tree that was extracted but not yet normalized still holds absolute
    links into the host's root, and the ``tar`` filter refuses any path that
    resolves through one of them. Such links, and any link sitting where the
    member itself goes, are removed first; the member then replaces it.
    Relative links on the way (``lib -> usr/lib``) are kept and followed, as
    is a relative link where a directory member goes.
    """
    parts = [p for p in Path(member.name).parts if p not in ("/", ".")]
    here = Path(dest_path)
    for i, part in enumerate(parts):
        here = here / part
        if not here.is_symlink():
            continue
        last = i == len(parts) - 1
        if os.readlink(here).startswith("/") or (last and not member.isdir()):
            here.unlink()
    return tarfile.tar_filter(member, dest_path)


def _untar_compressed(fmt: str) -> Callable[[Path, Path], None]:
    def untar(data_tar: Path, dest: Path) -> None:
        with tarfile.open(data_tar, f"r:{fmt}") as tar:
            tar.extractall(path=dest, filter=replacing_stale_links)

    return untar


def _untar_zstd(data_tar: Path, dest: Path) -> None:
    with open(data_tar, "rb") as fh:
        with zstandard.ZstdDecompressor().stream_reader(fh) as reader:
            with tarfile.open(fileobj=reader, mode="r|") as tar:
                tar.extractall(path=dest, filter=replacing_stale_links)


UNPACKERS: dict[str, Callable[[Path, Path], None]] = {
    "xz": _untar_compressed("xz"),
    "zst": _untar_zstd,
    "gz": _untar_compressed("gz"),
    "bz2": _untar_compressed("bz2"),
}

# Corrupt compressed data, as opposed to a filesystem that won't take the files.
CORRUPT_DATA_ERRORS = (
    tarfile.TarError,
    zstandard.ZstdError,
    lzma.LZMAError,
    gzip.BadGzipFile,
    zlib.error,
    EOFError,
)


def unpack_ar(archive: Path, scratch: Path) -> list[str]:
    """Write every member of the ``ar`` archive into ``scratch``; return their names."""
    try:
        ar = ArFile(str(archive))
    except ArError as e:
        raise UnsupportedFormat(f"{archive} is not an ar archive: {e}") from e

    names = []
    for member in ar.getmembers():
        # Member names are bare file names; never let one point elsewhere.
        name = Path(member.name).name
        with open(scratch / name, "wb") as out:
            out.write(member.read())
        names.append(name)
    return names


def extract_deb(archive: Path, dest: Path) -> None:
    """Extract the data member of the .deb at ``archive`` into ``dest``.

    Data members are tried in the order of ``DATA_MEMBER_FORMATS``; the first
    one present is used. Existing files and symlinks in ``dest`` are
    overwritten.
    """
    sez(f"Extracting: {archive.name}", ctx="(extract) ")
    try:
        dest.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Cannot create {dest}: {e}") from e

    with tempfile.TemporaryDirectory(prefix="crossroot-deb-") as tmpdir:
        scratch = Path(tmpdir)
        try:
            unpack_ar(archive, scratch)
        except OSError as e:
            raise FilesystemError(f"Cannot unpack {archive}: {e}") from e

        for fmt in DATA_MEMBER_FORMATS:
            data_tar = scratch / f"data.tar.{fmt}"
            if data_tar.is_file():
                try:
                    UNPACKERS[fmt](data_tar, dest)
                except CORRUPT_DATA_ERRORS as e:
                    raise UnsupportedFormat(f"Cannot unpack {data_tar.name} from {archive}: {e}") from e
                except OSError as e:
                    raise FilesystemError(f"Cannot extract {archive} into {dest}: {e}") from e
                return

    raise UnsupportedFormat(f"Unknown data archive format in {archive}")
