from pathlib import Path

import pytest

import constants
import repo_root
from context import BuildContext, lookup_profile
from errors import ProvisioningError, UnknownDistribution


def test_every_distro_id_has_a_profile():
    assert set(constants.DistroId) == set(constants.DISTRO_PROFILES)
    for distro, profile in constants.DISTRO_PROFILES.items():
        assert profile.id == distro.value
        assert profile.codename == distro.value.split("-", 1)[1]
        assert "main" in profile.components


def test_lookup_profile():
    profile = lookup_profile("debian-bookworm")
    assert profile.codename == "bookworm"
    assert profile.mirror == "http://deb.debian.org/debian"
    assert lookup_profile("ubuntu-focal").mirror == "http://archive.ubuntu.com/ubuntu"


def test_unknown_distribution():
    with pytest.raises(UnknownDistribution, match="Unknown distribution: nope"):
        BuildContext.from_environment("nope", env={}, root=Path("/tmp/r"))


def test_defaults_are_under_the_repo_root(tmp_path):
    bctx = BuildContext.from_environment("debian-bullseye", env={}, root=tmp_path)

    assert bctx.sysroot == tmp_path / "sysroots" / "debian-bullseye"
    assert bctx.cache_dir == tmp_path / "sysroots" / ".cache" / "debian-bullseye"
    assert bctx.prefix == tmp_path / "out" / "debian-bullseye" / "prefix"
    assert bctx.build_dir == tmp_path / "out" / "debian-bullseye" / "build"
    assert bctx.source_dir == tmp_path / "out" / "sources"
    assert bctx.cross_file == tmp_path / "sysroots" / "meson-cross-debian-bullseye.ini"
    assert bctx.jobs >= 1
    assert bctx.llvm_root is None
    assert bctx.target_triple == "x86_64-linux-gnu"


def test_environment_overrides(tmp_path):
    env = {
        "REPO_ROOT": str(tmp_path / "repo"),
        "SYSROOT": str(tmp_path / "sr"),
        "PREFIX": str(tmp_path / "pfx"),
        "BUILD_DIR": str(tmp_path / "b"),
        "SOURCE_DIR": str(tmp_path / "src"),
        "JOBS": "3",
        "LLVM_ROOT": "/opt/llvm-21",
    }
    bctx = BuildContext.from_environment("ubuntu-jammy", "arm64", env=env)

    assert bctx.root == tmp_path / "repo"
    assert bctx.sysroot == tmp_path / "sr"
    assert bctx.prefix == tmp_path / "pfx"
    assert bctx.build_dir == tmp_path / "b"
    assert bctx.source_dir == tmp_path / "src"
    assert bctx.jobs == 3
    assert bctx.llvm_root == Path("/opt/llvm-21")
    assert bctx.target_triple == "aarch64-linux-gnu"
    assert bctx.arch_info.debian_arch == "arm64"


def test_empty_overrides_are_ignored(tmp_path):
    bctx = BuildContext.from_environment("debian-trixie", env={"SYSROOT": "", "JOBS": ""}, root=tmp_path)
    assert bctx.sysroot == tmp_path / "sysroots" / "debian-trixie"


def test_missing_repo_root_is_an_error(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(repo_root, "argv", [str(tmp_path / "nowhere" / "crossroot")])
    with pytest.raises(ProvisioningError, match="REPO_ROOT"):
        BuildContext.from_environment("debian-trixie", env={})


@pytest.mark.parametrize(
    "arch,triple,linker",
    [
        ("amd64", "x86_64-linux-gnu", "ld-linux-x86-64.so.2"),
        ("x86_64", "x86_64-linux-gnu", "ld-linux-x86-64.so.2"),
        ("arm64", "aarch64-linux-gnu", "ld-linux-aarch64.so.1"),
        ("riscv64", "riscv64-linux-gnu", "ld-linux-riscv64.so.2"),
    ],
)
def test_arch_info(arch, triple, linker):
    info = constants.arch_info(arch)
    assert info.triple == triple
    assert info.dynamic_linker == linker


def test_index_cache_is_per_architecture(tmp_path):
    amd64 = BuildContext.from_environment("debian-bookworm", "amd64", env={}, root=tmp_path)
    arm64 = BuildContext.from_environment("debian-bookworm", "arm64", env={}, root=tmp_path)
    x86_64 = BuildContext.from_environment("debian-bookworm", "x86_64", env={}, root=tmp_path)

    assert amd64.index_cache == tmp_path / "sysroots" / ".cache" / "debian-bookworm" / "Packages-amd64"
    assert arm64.index_cache.name == "Packages-arm64"
    assert x86_64.index_cache == amd64.index_cache
