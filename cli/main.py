import functools
import subprocess
import sys
import re
from pathlib import Path

import click
from packaging.version import Version

import provisioning
from constants import DISTRO_PROFILES, EXTRA_PACKAGES, WANT
from context import BuildContext
from errors import ProvisioningError
from glibc_symbols import check_glibc_symbols


def do_check_deps(report: bool):
    def find_clang_version() -> str | None:
        # '''
        # Ubuntu clang version 18.1.3 (1ubuntu1)
        # Target: x86_64-pc-linux-gnu
        # Thread model: posix
        # InstalledDir: /usr/bin
        # '''
        try:
            clang_version_full = subprocess.check_output(["clang", "--version"]).decode("utf-8")
        except (OSError, subprocess.CalledProcessError):
            return None
        clang_version_m = re.search(r"clang version ([^ ]+)", clang_version_full)
        assert clang_version_m is not None
        return clang_version_m.group(1)

    def find_cmake_version() -> str | None:
        # 'cmake version 3.31.7'
        try:
            cmake_version_full = subprocess.check_output(["cmake", "--version"]).decode("utf-8")
        except (OSError, subprocess.CalledProcessError):
            return None
        match cmake_version_full.splitlines()[0].split():
            case ["cmake", "version", version]:
                return version
            case _:
                return None

    clang_version = find_clang_version()
    cmake_version = find_cmake_version()

    if clang_version is None:
        click.echo("Note: clang is required but was not found")
    elif Version(clang_version) < Version(WANT["clang"]):
        click.echo(f"Note: clang version {WANT['clang']} or later is required")

    if cmake_version is None:
        click.echo("Note: cmake is required to build libcxx but was not found")
    elif Version(cmake_version) < Version(WANT["cmake"]):
        click.echo(f"Note: cmake version {WANT['cmake']} or later is required")

    if report:
        click.echo(f"{clang_version=}")
        click.echo(f"{cmake_version=}")


def do_list_distros():
    click.echo("Available distributions:")
    for profile in sorted(DISTRO_PROFILES.values(), key=lambda p: p.id):
        click.echo(f"  {profile.id:<20} ({profile.codename})")


def mk_context(distro: str, arch: str) -> BuildContext:
    return BuildContext.from_environment(distro, arch)


def die_on_provisioning_error(f):
    # Fatal conditions end the run with a message and exit status 1;
    # skipped packages are only warned about along the way.
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ProvisioningError as e:
            click.echo(f"ERROR: {e}", err=True)
            sys.exit(1)
        except subprocess.CalledProcessError:
            sys.exit(1)

    return wrapper


arch_option = click.option("--arch", default="amd64", show_default=True, help="Target architecture")
extra_option = click.option(
    "--extra", is_flag=True, help="Also install " + ", ".join(EXTRA_PACKAGES) + " (skipped if the index lacks it)"
)


@click.group()
def cli():
    pass


@cli.command("list")
def list_distros():
    "List available distributions"
    do_list_distros()


@cli.command()
@click.argument("distro")
@arch_option
@extra_option
@die_on_provisioning_error
def sysroot(distro, arch, extra):
    "Set up a sysroot for cross-compiling to DISTRO"
    provisioning.provision_sysroot(mk_context(distro, arch), extra)


@cli.command()
@click.argument("distro")
@arch_option
@die_on_provisioning_error
def libcxx(distro, arch):
    "Build libunwind, libc++abi and libc++ against DISTRO's sysroot"
    provisioning.want_libcxx(mk_context(distro, arch))


@cli.command()
@click.argument("distro")
@arch_option
@extra_option
@die_on_provisioning_error
def provision(distro, arch, extra):
    "Set up the sysroot, then build the C++ runtime"
    provisioning.provision(mk_context(distro, arch), extra)


@cli.command()
def check_deps():
    do_check_deps(report=True)


@cli.command("check-glibc-symbols")
@click.argument("binary", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--max-version", default="2.17", show_default=True, help="Newest glibc version allowed")
@die_on_provisioning_error
def check_glibc_symbols_cmd(binary, max_version):
    "Check that BINARY needs no glibc symbols newer than --max-version"
    if not check_glibc_symbols(binary, max_version):
        sys.exit(1)


@cli.command()
@click.argument("distro")
@arch_option
@die_on_provisioning_error
def status(distro, arch):
    bctx = mk_context(distro, arch)
    click.echo(f"{bctx.root=}")
    click.echo(f"{sys.argv[0]=}")
    for name in ("sysroot", "cache_dir", "prefix", "build_dir", "source_dir", "cross_file"):
        click.echo(f"{name}={getattr(bctx, name)}")
    click.echo(f"target_triple={bctx.target_triple}")
    do_check_deps(report=True)


if __name__ == "__main__":
    cli()
