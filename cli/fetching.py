from pathlib import Path
from urllib.error import URLError

from errors import FilesystemError, NetworkError
from hermetic import sez


def download(url: str, filename: Path) -> None:
    # This import is relatively expensive (20 ms) and is rarely needed,
    # so it is imported here to avoid slowing down the common case.
    from urllib.request import urlretrieve  # noqa: PLC0415

    urlretrieve(url, filename)


def fetch(url: str, dest: Path) -> bool:
    """
    Fetch ``url`` to ``dest`` unless ``dest`` is already present.

    The download goes to ``dest.tmp`` and is renamed into place only once
    complete, so ``dest`` never holds a partial file. An existing ``dest`` is
    trusted as is; remove it by hand to force a re-download.

    Returns True if a download happened, False on a cache hit.
    """
    if dest.exists():
        return False

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Cannot create {dest.parent}: {e}") from e

    tmp = dest.with_name(dest.name + ".tmp")
    sez(f"Downloading: {url}", ctx="(fetch) ")
    try:
        download(url, tmp)
    except (URLError, OSError, ValueError) as e:
        tmp.unlink(missing_ok=True)
        raise NetworkError(f"Failed to download {url}: {e}") from e

    try:
        tmp.replace(dest)
    except OSError as e:
        raise FilesystemError(f"Cannot move {tmp} to {dest}: {e}") from e
    return True
