import subprocess
import time
from pathlib import Path
import os
from typing import Sequence, TypeAlias

import click

from context import BuildContext
from errors import ProvisioningError


def sez(msg: str, ctx: str, err=False):
    click.echo("CROSSROOT SEZ: " + ctx + msg, err=err)


def showing_cmds() -> bool:
    return os.environ.get("XJ_SHOW_CMDS", "0") != "0"


def mk_env_for(bctx: BuildContext | None, env_ext=None, **kwargs) -> dict[str, str]:
    if "env" in kwargs:
        env = kwargs["env"]
        del kwargs["env"]  # we'll pass it explicitly, so not via kwargs
    else:
        env = os.environ.copy()

    if env_ext is not None:
        env = {**env, **env_ext}

    if bctx is not None:
        path_elts = [str(bctx.prefix / "bin")]
        if bctx.llvm_root is not None:
            path_elts.append(str(bctx.llvm_root / "bin"))
        path_elts.append(env.get("PATH", os.defpath))
        env["PATH"] = os.pathsep.join(path_elts)
        env["PKG_CONFIG_SYSROOT_DIR"] = str(bctx.sysroot)

    return env


def run_command_with_progress(
    command, stdout_file: Path, stderr_file: Path, bctx: BuildContext | None = None, env_ext=None, cwd=None
) -> None:
    """
    Run a command, redirecting stdout/stderr to files, and print dots while waiting.
    """
    if showing_cmds():
        click.echo(f": {command}")

    stdout_file.parent.mkdir(parents=True, exist_ok=True)
    with open(stdout_file, "wb") as out_f, open(stderr_file, "wb") as err_f:
        proc = subprocess.Popen(
            command,
            stdout=out_f,
            stderr=err_f,
            cwd=cwd,
            env=mk_env_for(bctx, env_ext),
        )

        while proc.poll() is None:
            # Process is still running
            print(".", end="", flush=True)
            time.sleep(0.3)

        # Final newline after progress dots
        print()
        if proc.returncode != 0:
            raise ProvisioningError(
                f"Command failed with return code {proc.returncode}; see {stdout_file} and {stderr_file}"
            )


RunSpec: TypeAlias = str | Sequence[str | bytes | os.PathLike[str] | os.PathLike[bytes]]


def run(
    cmd: RunSpec, bctx: BuildContext | None = None, check=False, env_ext=None, **kwargs
) -> subprocess.CompletedProcess:
    if showing_cmds():
        click.echo(f": {cmd}")

    return subprocess.run(
        cmd,
        check=check,
        env=mk_env_for(bctx, env_ext),
        **kwargs,
    )

