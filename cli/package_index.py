"""Resolving package names to mirror paths through a distribution's Packages index."""

import gzip
import lzma
from pathlib import Path
from typing import Callable

from debian import deb822

from constants import INDEX_SUFFIXES
from errors import FilesystemError, IndexUnavailable
from fetching import download
from hermetic import sez

DECOMPRESSORS: dict[str, Callable[[bytes], bytes]] = {
    "gz": gzip.decompress,
    "xz": lzma.decompress,
}


def index_url(mirror: str, codename: str, arch: str, suffix: str) -> str:
    return f"{mirror.rstrip('/')}/dists/{codename}/main/binary-{arch}/Packages.{suffix}"


def _try_index_format(url: str, suffix: str, scratch: Path) -> bytes | None:
    try:
        download(url, scratch)
        return DECOMPRESSORS[suffix](scratch.read_bytes())
    except (OSError, ValueError, EOFError, lzma.LZMAError) as e:
        sez(f"Could not use {url}: {e}", ctx="(index) ", err=True)
        return None
    finally:
        scratch.unlink(missing_ok=True)


def ensure_index(mirror: str, codename: str, arch: str, cache: Path) -> Path:
    """Make sure a decompressed Packages index is cached at ``cache``.

    An existing cache file is used as is, however old it is.
    """
    if cache.exists():
        return cache

    try:
        cache.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Cannot create {cache.parent}: {e}") from e

    for suffix in INDEX_SUFFIXES:
        url = index_url(mirror, codename, arch, suffix)
        sez(f"Fetching package list from {url}", ctx="(index) ")
        text = _try_index_format(url, suffix, cache.with_name(f"{cache.name}.{suffix}.tmp"))
        if text is None:
            continue

        tmp = cache.with_name(cache.name + ".tmp")
        try:
            tmp.write_bytes(text)
            tmp.replace(cache)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise FilesystemError(f"Cannot write package list {cache}: {e}") from e
        return cache

    raise IndexUnavailable(f"Failed to fetch package list for {codename}/{arch} from {mirror}")


def lookup_filename(index: Path, package: str) -> str | None:
    """Return the ``Filename`` of the first stanza for ``package``, or None."""
    with open(index, encoding="utf-8", errors="replace") as handle:
        for stanza in deb822.Packages.iter_paragraphs(handle, fields=["Package", "Filename"], use_apt_pkg=False):
            if stanza.get("Package") == package and "Filename" in stanza:
                return stanza["Filename"]
    return None


def resolve_download_path(mirror: str, codename: str, arch: str, package: str, cache: Path) -> str | None:
    return lookup_filename(ensure_index(mirror, codename, arch, cache), package)
