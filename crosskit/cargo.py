"""
Cargo and rustup integration.

- Prerequisite checks: make sure the Rust target (or rust-src, for
  build-std targets) is installed through rustup
- Command construction: the minimal cargo argv for one target
- Invocation: run a command with the composed environment
"""

import logging
import os
import subprocess
from typing import Dict, List, Mapping, Optional

from crosskit.core.exceptions import (
    BuildStdRequiredError,
    CommandFailedError,
    ProgramNotFoundError,
    TargetInstallError,
)
from crosskit.cross.env import build_std_config

logger = logging.getLogger(__name__)


def _toolchain_args(toolchain: Optional[str]) -> List[str]:
    return ["--toolchain", toolchain] if toolchain else []


def _capture(argv: List[str]) -> str:
    """Run a query command and return its stdout."""
    try:
        result = subprocess.run(argv, capture_output=True, text=True, check=False)
    except FileNotFoundError:
        raise ProgramNotFoundError(argv[0])
    if result.returncode != 0:
        raise CommandFailedError(" ".join(argv), result.returncode)
    return result.stdout


def ensure_target_installed(target: str, toolchain: Optional[str] = None) -> bool:
    """
    Make sure rustup has the standard library for ``target``.

    Installs the target when rustup offers it. Targets rustup does not ship
    but rustc knows about need build-std.

    Args:
        target: Rust target triple
        toolchain: Optional rustup toolchain name

    Returns:
        True if the target must be built with build-std

    Raises:
        TargetInstallError: If ``rustup target add`` fails
        BuildStdRequiredError: If neither rustup nor rustc knows the target
    """
    tc = _toolchain_args(toolchain)

    installed = _capture(["rustup", "target", "list", "--installed", *tc])
    if any(line.strip() == target for line in installed.splitlines()):
        return False

    available = _capture(["rustup", "target", "list", *tc])
    if any(line.strip().startswith(target) for line in available.splitlines()):
        logger.info(f"Installing Rust target: {target}")
        try:
            run_command(["rustup", "target", "add", target, *tc])
        except CommandFailedError as e:
            raise TargetInstallError(target, str(e))
        return False

    known = _capture(["rustc", "--print=target-list"])
    if any(line.strip() == target for line in known.splitlines()):
        logger.info(
            f"Target {target} not available in rustup but exists in rustc, "
            f"using build-std"
        )
        return True

    raise BuildStdRequiredError(target)


def ensure_rust_src(target: str, toolchain: Optional[str] = None) -> None:
    """Add the rust-src component needed by build-std; failures only warn."""
    suffix = f" and toolchain: {toolchain}" if toolchain else ""
    logger.info(f"Adding rust-src component for target: {target}{suffix}")
    try:
        run_command(
            ["rustup", "component", "add", "rust-src", "--target", target]
            + _toolchain_args(toolchain)
        )
    except CommandFailedError:
        logger.warning("Failed to add rust-src component, build-std may not work")


def resolve_build_std(*values: Optional[str]) -> Optional[str]:
    """
    First non-empty build-std setting, with ``'true'`` expanded to the
    default crate list.
    """
    for value in values:
        if value:
            return build_std_config() if value == "true" else value
    return None


def cargo_command(config, target: str, build_std: Optional[str] = None) -> List[str]:
    """
    Build the cargo argv for one target.

    Args:
        config: CrossConfig for the run
        target: Rust target triple
        build_std: Crates to rebuild with -Zbuild-std, if any

    Returns:
        Argument vector starting with 'cargo'

    Example:
        >>> cargo_command(CrossConfig(), "aarch64-unknown-linux-musl")
        ['cargo', 'build', '--target', 'aarch64-unknown-linux-musl', '--release']
    """
    argv = ["cargo"]
    if config.toolchain:
        argv.append(f"+{config.toolchain}")
    argv.append(config.command.value)

    if not config.no_cargo_target:
        argv += ["--target", target]

    if config.profile == "release":
        argv.append("--release")
    elif config.profile != "debug":
        argv += ["--profile", config.profile]

    if build_std:
        argv.append(f"-Zbuild-std={build_std}")

    if config.verbose_level > 0:
        argv.append("-" + "v" * config.verbose_level)

    argv += config.cargo_args
    return argv


def run_command(argv: List[str], env: Optional[Mapping[str, str]] = None) -> None:
    """
    Run a command to completion, inheriting stdio.

    ``env`` is layered over the current process environment. An empty
    CARGO_TARGET_DIR is dropped so cargo falls back to its default.

    Raises:
        ProgramNotFoundError: If the program is not on PATH
        CommandFailedError: If the command exits non-zero
    """
    full_env: Dict[str, str] = dict(os.environ)
    if env:
        full_env.update(env)
    if full_env.get("CARGO_TARGET_DIR") == "":
        del full_env["CARGO_TARGET_DIR"]

    logger.debug(f"Running: {' '.join(argv)}")
    try:
        result = subprocess.run(argv, env=full_env, check=False)
    except FileNotFoundError:
        raise ProgramNotFoundError(argv[0])

    if result.returncode != 0:
        raise CommandFailedError(" ".join(argv), result.returncode)


__all__ = [
    "build_std_config",
    "cargo_command",
    "ensure_rust_src",
    "ensure_target_installed",
    "resolve_build_std",
    "run_command",
]
