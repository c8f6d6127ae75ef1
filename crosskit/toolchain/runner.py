"""
Runner setup for executing cross-compiled binaries on the build host.

A runner is what cargo prefixes to a test or run invocation:

- ``qemu-<arch> -L <sysroot>`` for foreign Linux binaries on a Linux host
- a Docker wrapper script running qemu inside a Linux container on macOS
- ``wine`` for Windows binaries on a non-Windows host
- ``arch -x86_64`` (Rosetta) for x86_64 macOS binaries on Apple Silicon

A missing runner tool is not an error: a warning is logged and the build
still proceeds.
"""

import logging
from pathlib import Path

from crosskit.core.filesystem import atomic_write, find_executable
from crosskit.cross.env import CrossEnv
from crosskit.cross.targets import Arch, Libc, Os, TargetConfig

logger = logging.getLogger(__name__)

QEMU_RELEASES = "https://github.com/zijiren233/qemu-user-static/releases/download"

# Host OS able to run each target OS family natively
_NATIVE_HOST_OS = {
    Os.LINUX: "linux",
    Os.WINDOWS: "windows",
    Os.FREEBSD: "freebsd",
    Os.DARWIN: "darwin",
}

DOCKER_RUNNER_TEMPLATE = """#!/bin/bash
set -e

QEMU_PATH="{qemu_path}"
QEMU_BINARY="{qemu_binary}"
SYSROOT="{sysroot}"
DOCKER_IMAGE="{docker_image}"

if [[ $# -lt 1 ]]; then
    echo "Usage: $0 <binary> [args...]" >&2
    exit 1
fi

BINARY="$1"
shift

if [[ ! -f "$BINARY" ]]; then
    echo "Error: Binary not found: $BINARY" >&2
    exit 1
fi

BINARY_NAME=$(basename "$BINARY")

CONTAINER_ID=$(docker create --rm -i "$DOCKER_IMAGE" /bin/sh -c "sleep infinity")

cleanup() {{
    docker rm -f "$CONTAINER_ID" >/dev/null 2>&1 || true
}}
trap cleanup EXIT

docker start "$CONTAINER_ID" >/dev/null

docker cp "$QEMU_PATH" "$CONTAINER_ID:/usr/bin/$QEMU_BINARY" >/dev/null
docker exec "$CONTAINER_ID" chmod +x "/usr/bin/$QEMU_BINARY"

if [[ -d "$SYSROOT/lib" ]]; then
    docker cp "$SYSROOT" "$CONTAINER_ID:/sysroot" >/dev/null
fi

docker cp "$BINARY" "$CONTAINER_ID:/tmp/$BINARY_NAME" >/dev/null
docker exec "$CONTAINER_ID" chmod +x "/tmp/$BINARY_NAME"

docker exec "$CONTAINER_ID" /usr/bin/$QEMU_BINARY -L /sysroot /tmp/$BINARY_NAME "$@"
"""


def runner_required(target: TargetConfig, command, host) -> bool:
    """
    Decide whether binaries for ``target`` need a runner.

    Args:
        target: Target being built
        command: CommandKind of the run
        host: HostPlatform

    Returns:
        True when the command executes binaries the host cannot run as-is
    """
    if not command.needs_runner:
        return False
    native_os = _NATIVE_HOST_OS.get(target.os)
    if native_os != host.os:
        return True
    return not host.can_run_natively(target.arch)


def qemu_download_url(qemu_version: str, platform: str) -> str:
    """Release asset URL for a static qemu-user bundle."""
    return f"{QEMU_RELEASES}/{qemu_version}/qemu-user-static-{platform}-musl.tgz"


def setup_qemu_runner(
    env: CrossEnv,
    arch: Arch,
    bin_prefix: str,
    compiler_dir: Path,
    config,
    host,
    installer,
) -> None:
    """
    Configure qemu-user as the runner for a Linux target on a Linux host.

    The static qemu bundle is downloaded into the cache on first use and
    its directory prepended to PATH. The toolchain sysroot is passed with
    ``-L`` when it carries a ``lib`` directory.
    """
    qemu_binary = arch.qemu_binary_name
    if qemu_binary is None:
        return

    qemu_dir = config.cross_compiler_dir / f"qemu-user-static-{config.qemu_version}"
    qemu_path = qemu_dir / qemu_binary
    if not qemu_path.exists():
        url = qemu_download_url(config.qemu_version, host.download_platform())
        installer.download_and_extract(url, qemu_dir)

    if not qemu_path.exists():
        logger.warning(f"{qemu_binary} not found in {qemu_dir}, skipping runner setup")
        return

    env.add_path(qemu_dir)
    sysroot = compiler_dir / bin_prefix
    if (sysroot / "lib").exists():
        env.set_runner(f"{qemu_binary} -L {sysroot}")
    else:
        env.set_runner(qemu_binary)
    logger.info(f"Configured QEMU runner: {qemu_binary} for {arch}")


def setup_docker_qemu_runner(
    env: CrossEnv,
    arch: Arch,
    bin_prefix: str,
    compiler_dir: Path,
    libc: Libc,
    config,
    host,
    installer,
) -> None:
    """
    Configure a Docker-hosted qemu runner for Linux targets on macOS.

    Writes an executable wrapper script into the cache directory that
    copies the binary, qemu and the sysroot into a throwaway container and
    runs it there.
    """
    if find_executable("docker") is None:
        logger.warning("Docker not found, skipping Docker QEMU runner setup")
        return

    qemu_binary = arch.qemu_binary_name
    if qemu_binary is None:
        return

    qemu_dir = (
        config.cross_compiler_dir
        / f"qemu-user-static-{config.qemu_version}-linux-{host.arch}"
    )
    qemu_path = qemu_dir / qemu_binary
    if not qemu_path.exists():
        url = qemu_download_url(config.qemu_version, f"linux-{host.arch}")
        installer.download_and_extract(url, qemu_dir)

    if not qemu_path.exists():
        logger.warning(f"{qemu_binary} not found in {qemu_dir}, skipping runner setup")
        return

    docker_image = "alpine:latest" if libc is Libc.MUSL else "ubuntu:latest"
    script = config.cross_compiler_dir / f"docker-qemu-runner-{arch}-{libc}.sh"
    atomic_write(
        script,
        DOCKER_RUNNER_TEMPLATE.format(
            qemu_path=qemu_path,
            qemu_binary=qemu_binary,
            sysroot=compiler_dir / bin_prefix,
            docker_image=docker_image,
        ),
        mode=0o755,
    )

    env.set_runner(str(script))
    logger.info(
        f"Configured Docker QEMU runner: {qemu_binary} for {arch} (image: {docker_image})"
    )


def setup_wine_runner(env: CrossEnv, rust_target: str) -> None:
    """Use wine as the runner when it is installed."""
    if find_executable("wine") is None:
        logger.warning(f"wine not found, {rust_target} binaries will not be run")
        return
    env.set_runner("wine")
    logger.info(f"Configured Wine runner for {rust_target}")


def setup_rosetta_runner(env: CrossEnv, arch: Arch, rust_target: str, host) -> None:
    """Run x86_64 macOS binaries through Rosetta on Apple Silicon hosts."""
    if not host.is_darwin or host.arch != "aarch64":
        return
    if arch is not Arch.X86_64 or "-apple-darwin" not in rust_target:
        return
    env.set_runner("arch -x86_64")
    logger.info(f"Configured Rosetta runner for {rust_target}")


__all__ = [
    "qemu_download_url",
    "runner_required",
    "setup_docker_qemu_runner",
    "setup_qemu_runner",
    "setup_rosetta_runner",
    "setup_wine_runner",
]
