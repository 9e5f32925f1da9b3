import enum
from dataclasses import dataclass

# Note: the keys in this dict are not command names, or file names,
# just arbitrary names for the things we are tracking.
WANT = {
    "libcxx": "21.1.8",
    "clang": "18",
    "cmake": "3.20",
}

LLVM_PROJECT_URL = "https://github.com/llvm/llvm-project/archive/refs/tags/llvmorg-{version}.tar.gz"

# Subdirectories of the LLVM monorepo needed to build the runtimes.
LLVM_RUNTIME_SUBDIRS = ("libunwind", "libcxxabi", "libcxx", "cmake", "runtimes")


class DistroId(enum.Enum):
    DEBIAN_STRETCH = "debian-stretch"
    DEBIAN_BUSTER = "debian-buster"
    DEBIAN_BULLSEYE = "debian-bullseye"
    DEBIAN_BOOKWORM = "debian-bookworm"
    DEBIAN_TRIXIE = "debian-trixie"
    UBUNTU_XENIAL = "ubuntu-xenial"
    UBUNTU_BIONIC = "ubuntu-bionic"
    UBUNTU_FOCAL = "ubuntu-focal"
    UBUNTU_JAMMY = "ubuntu-jammy"
    UBUNTU_NOBLE = "ubuntu-noble"


@dataclass(frozen=True)
class DistroProfile:
    id: str
    codename: str
    mirror: str
    components: frozenset[str]
    architecture: str


def _profile(distro: DistroId, mirror: str) -> DistroProfile:
    codename = distro.value.split("-", 1)[1]
    return DistroProfile(distro.value, codename, mirror, frozenset({"main"}), "amd64")


DEBIAN_ARCHIVE = "http://archive.debian.org/debian"
DEBIAN_MIRROR = "http://deb.debian.org/debian"
UBUNTU_MIRROR = "http://archive.ubuntu.com/ubuntu"

DISTRO_PROFILES: dict[DistroId, DistroProfile] = {
    DistroId.DEBIAN_STRETCH: _profile(DistroId.DEBIAN_STRETCH, DEBIAN_ARCHIVE),
    DistroId.DEBIAN_BUSTER: _profile(DistroId.DEBIAN_BUSTER, DEBIAN_ARCHIVE),
    DistroId.DEBIAN_BULLSEYE: _profile(DistroId.DEBIAN_BULLSEYE, DEBIAN_MIRROR),
    DistroId.DEBIAN_BOOKWORM: _profile(DistroId.DEBIAN_BOOKWORM, DEBIAN_MIRROR),
    DistroId.DEBIAN_TRIXIE: _profile(DistroId.DEBIAN_TRIXIE, DEBIAN_MIRROR),
    DistroId.UBUNTU_XENIAL: _profile(DistroId.UBUNTU_XENIAL, UBUNTU_MIRROR),
    DistroId.UBUNTU_BIONIC: _profile(DistroId.UBUNTU_BIONIC, UBUNTU_MIRROR),
    DistroId.UBUNTU_FOCAL: _profile(DistroId.UBUNTU_FOCAL, UBUNTU_MIRROR),
    DistroId.UBUNTU_JAMMY: _profile(DistroId.UBUNTU_JAMMY, UBUNTU_MIRROR),
    DistroId.UBUNTU_NOBLE: _profile(DistroId.UBUNTU_NOBLE, UBUNTU_MIRROR),
}

_missing = set(DistroId) - set(DISTRO_PROFILES)
if _missing:
    raise RuntimeError(f"No distribution profile for {sorted(d.value for d in _missing)}")


# Packages needed for a minimal sysroot: glibc runtime (libc.so.6 and the
# dynamic linker), glibc headers and static libs, kernel headers.
SYSROOT_PACKAGES = (
    "libc6",
    "libc6-dev",
    "linux-libc-dev",
)

# Only fetched with --extra; the name needs a version suffix on most distros.
EXTRA_PACKAGES = ("libstdc++-dev",)


@dataclass(frozen=True)
class ArchInfo:
    debian_arch: str
    cpu_family: str
    cpu: str
    dynamic_linker: str

    @property
    def triple(self) -> str:
        return f"{self.cpu}-linux-gnu"


KNOWN_ARCHES = {
    "amd64": ArchInfo("amd64", "x86_64", "x86_64", "ld-linux-x86-64.so.2"),
    "arm64": ArchInfo("arm64", "aarch64", "aarch64", "ld-linux-aarch64.so.1"),
}
KNOWN_ARCHES["x86_64"] = KNOWN_ARCHES["amd64"]
KNOWN_ARCHES["aarch64"] = KNOWN_ARCHES["arm64"]


def arch_info(arch: str) -> ArchInfo:
    if arch in KNOWN_ARCHES:
        return KNOWN_ARCHES[arch]
    return ArchInfo(arch, arch, arch, f"ld-linux-{arch}.so.2")


# Package index compression formats, in the order they are tried.
INDEX_SUFFIXES = ("gz", "xz")

# Data members of a .deb, in the order they are tried.
DATA_MEMBER_FORMATS = ("xz", "zst", "gz", "bz2")
