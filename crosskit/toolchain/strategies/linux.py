"""
Linux provisioning strategy.

Uses the cross-make gcc toolchains (musl or glibc, optionally pinned to a
glibc version) and configures qemu as the runner when binaries need to be
executed.
"""

import logging

from crosskit.core.exceptions import CompilerNotFoundError
from crosskit.cross.env import CrossEnv
from crosskit.cross.targets import DEFAULT_GLIBC_VERSION, Libc, TargetConfig
from crosskit.toolchain.naming import (
    apply_gcc_toolchain,
    cross_make_dir,
    cross_make_url,
    linux_bin_prefix,
    linux_folder_name,
)
from crosskit.toolchain.runner import (
    runner_required,
    setup_docker_qemu_runner,
    setup_qemu_runner,
)
from crosskit.toolchain.strategy import ToolchainProvisioner

logger = logging.getLogger(__name__)


class LinuxProvisioner(ToolchainProvisioner):
    """Strategy for *-linux-musl* and *-linux-gnu* targets."""

    name = "Linux"

    def setup(self, target: TargetConfig, config, host) -> CrossEnv:
        bin_prefix = linux_bin_prefix(target)
        folder = linux_folder_name(target, config.glibc_version)
        compiler_dir = cross_make_dir(
            config.cross_compiler_dir, folder, config.cross_deps_version
        )

        gcc_path = compiler_dir / "bin" / f"{bin_prefix}-gcc"
        if not gcc_path.exists():
            url = cross_make_url(
                config.cross_deps_version, host.download_platform(), folder
            )
            self.installer.ensure(compiler_dir, url)
            if not gcc_path.exists():
                raise CompilerNotFoundError(gcc_path)

        env = CrossEnv()
        apply_gcc_toolchain(env, compiler_dir, bin_prefix, target.triple)

        if runner_required(target, config.command, host):
            if host.is_darwin:
                setup_docker_qemu_runner(
                    env,
                    target.arch,
                    bin_prefix,
                    compiler_dir,
                    target.libc,
                    config,
                    host,
                    self.installer,
                )
            elif host.is_linux:
                setup_qemu_runner(
                    env,
                    target.arch,
                    bin_prefix,
                    compiler_dir,
                    config,
                    host,
                    self.installer,
                )

        libc = str(target.libc)
        if target.libc is Libc.GNU and config.glibc_version != DEFAULT_GLIBC_VERSION:
            libc = f"{libc} {config.glibc_version}"
        logger.info(f"Configured Linux {libc} toolchain for {target.triple}")
        return env
