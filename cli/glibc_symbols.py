import re
from pathlib import Path

from packaging.version import InvalidVersion, Version

from errors import ProvisioningError
from hermetic import run, sez

GLIBC_SYMBOL_RE = re.compile(r"GLIBC_([0-9][0-9.]*)")


def say(msg: str, err=False):
    sez(msg, ctx="(glibc) ", err=err)


def highest_glibc_version(objdump_output: str) -> Version | None:
    """
    >>> highest_glibc_version("0000 DF *UND* 0000 (GLIBC_2.2.5) memcpy\\n0000 DF *UND* 0000 (GLIBC_2.14) memcpy")
    <Version('2.14')>
    """
    versions = []
    for m in GLIBC_SYMBOL_RE.finditer(objdump_output):
        try:
            versions.append(Version(m.group(1).rstrip(".")))
        except InvalidVersion:
            continue
    return max(versions, default=None)


def check_glibc_symbols(binary: Path, max_version: str = "2.17") -> bool:
    """Returns True if ``binary`` needs no glibc symbol newer than ``max_version``."""
    say(f"Checking glibc symbols in {binary}")
    try:
        cp = run(["objdump", "-T", str(binary)], capture_output=True)
    except OSError as e:
        raise ProvisioningError(f"Cannot run objdump: {e}") from e
    highest = highest_glibc_version(cp.stdout.decode("utf-8", errors="replace"))

    if highest is not None:
        say(f"Highest glibc version required: {highest}")
        if highest > Version(max_version):
            say(f"Binary requires glibc {highest}, which is newer than target {max_version}", err=True)
            return False

    say("glibc version check passed")
    return True
