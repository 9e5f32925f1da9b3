from pathlib import Path
import json
import enum

from packaging.version import Version

import hermetic
import libcxx
import sysroot
import toolchain
from constants import EXTRA_PACKAGES, SYSROOT_PACKAGES, WANT
from context import BuildContext
from errors import ProvisioningError


class InstallationState(enum.Enum):
    NOT_INSTALLED = 0
    VERSION_OK = 1
    VERSION_TOO_OLD = 2


class TrackingWhatWeHave:
    """What has been built into a prefix, and at which version."""

    def __init__(self, prefix: Path):
        self.path = prefix / "config.crossroot-BUILT.json"
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                self._have = json.load(f)
        except OSError:
            self._have = {}

    def save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._have, f, indent=2, sort_keys=True)

    def note_we_have(self, name: str, version: Version):
        had = self._have.get(name)
        now = str(version)
        self._have[name] = now
        if had != now:
            self.save()

    def query(self, name: str) -> str | None:
        return self._have.get(name)

    def compatible(self, name: str) -> InstallationState:
        assert name in WANT
        wanted_spec: str = WANT[name]

        if name not in self._have:
            return InstallationState.NOT_INSTALLED

        if Version(self._have[name]) >= Version(wanted_spec):
            return InstallationState.VERSION_OK
        return InstallationState.VERSION_TOO_OLD


def prepare_dirs(bctx: BuildContext) -> None:
    for sub in ("lib", "include", "bin", "share"):
        (bctx.prefix / sub).mkdir(parents=True, exist_ok=True)
    bctx.build_dir.mkdir(parents=True, exist_ok=True)
    bctx.source_dir.mkdir(parents=True, exist_ok=True)


def provision_sysroot(bctx: BuildContext, extra=False) -> Path:
    packages = SYSROOT_PACKAGES + EXTRA_PACKAGES if extra else SYSROOT_PACKAGES
    root = sysroot.assemble(bctx, packages)
    hermetic.sez(f"Sysroot created at {root}", ctx="(sysroot) ")
    toolchain.write_meson_cross_file(bctx)
    return root


def want_libcxx(bctx: BuildContext) -> None:
    def say(msg: str):
        hermetic.sez(msg, ctx="(libcxx) ")

    if not bctx.sysroot.is_dir():
        raise ProvisioningError(f"No sysroot at {bctx.sysroot}; run `crossroot sysroot {bctx.distro}` first")

    have = TrackingWhatWeHave(bctx.prefix)
    version = WANT["libcxx"]
    match have.compatible("libcxx"):
        case InstallationState.VERSION_OK:
            say(f"Skipping libcxx (already built, version {have.query('libcxx')})")
            return
        case InstallationState.VERSION_TOO_OLD:
            say(f"libcxx version {have.query('libcxx')} is outdated; rebuilding...")
        case InstallationState.NOT_INSTALLED:
            pass

    say(f"Building libcxx {version}...")
    prepare_dirs(bctx)
    libcxx.build_libcxx(bctx, version)
    have.note_we_have("libcxx", Version(version))
    say(f"Built libcxx {version}")


def provision(bctx: BuildContext, extra=False) -> None:
    provision_sysroot(bctx, extra)
    want_libcxx(bctx)
