"""The build context: every path and target setting for one provisioning run.

A ``BuildContext`` is built once at startup, from the distribution id, the
target architecture and the environment, and is then passed explicitly to
everything that needs it. Nothing downstream reads ``os.environ`` for these
settings.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping
import os

import repo_root
from constants import ArchInfo, DistroId, DistroProfile, DISTRO_PROFILES, arch_info
from errors import ProvisioningError, UnknownDistribution


def lookup_profile(distro_id: str) -> DistroProfile:
    try:
        return DISTRO_PROFILES[DistroId(distro_id)]
    except ValueError:
        raise UnknownDistribution(f"Unknown distribution: {distro_id}") from None


@dataclass(frozen=True)
class BuildContext:
    root: Path
    profile: DistroProfile
    arch: str
    sysroot: Path
    cache_dir: Path
    prefix: Path
    build_dir: Path
    source_dir: Path
    jobs: int
    llvm_root: Path | None = None

    @classmethod
    def from_environment(
        cls,
        distro_id: str,
        arch: str = "amd64",
        env: Mapping[str, str] | None = None,
        root: Path | None = None,
        profile: DistroProfile | None = None,
    ) -> "BuildContext":
        """Build a context, honouring the REPO_ROOT/SYSROOT/PREFIX/BUILD_DIR/
        SOURCE_DIR/JOBS/LLVM_ROOT overrides in ``env``.

        ``profile`` is normally looked up from ``distro_id``; passing one in
        lets callers point at a mirror that is not in the static table.
        """
        if env is None:
            env = os.environ
        if profile is None:
            profile = lookup_profile(distro_id)
        if root is None and env.get("REPO_ROOT"):
            root = Path(env["REPO_ROOT"])
        if root is None:
            try:
                root = repo_root.find_repo_root_dir_Path()
            except FileNotFoundError as e:
                raise ProvisioningError(f"{e} Set REPO_ROOT to choose one.") from e

        def path_from(var: str, default: Path) -> Path:
            return Path(env[var]) if env.get(var) else default

        out = root / "out" / profile.id
        return cls(
            root=root,
            profile=profile,
            arch=arch,
            sysroot=path_from("SYSROOT", root / "sysroots" / profile.id),
            cache_dir=root / "sysroots" / ".cache" / profile.id,
            prefix=path_from("PREFIX", out / "prefix"),
            build_dir=path_from("BUILD_DIR", out / "build"),
            source_dir=path_from("SOURCE_DIR", root / "out" / "sources"),
            jobs=int(env["JOBS"]) if env.get("JOBS") else (os.cpu_count() or 1),
            llvm_root=Path(env["LLVM_ROOT"]) if env.get("LLVM_ROOT") else None,
        )

    @property
    def distro(self) -> str:
        return self.profile.id

    @property
    def arch_info(self) -> ArchInfo:
        return arch_info(self.arch)

    @property
    def target_triple(self) -> str:
        return self.arch_info.triple

    @property
    def index_cache(self) -> Path:
        return self.cache_dir / f"Packages-{self.arch_info.debian_arch}"

    @property
    def cross_file(self) -> Path:
        return self.root / "sysroots" / f"meson-cross-{self.distro}.ini"
