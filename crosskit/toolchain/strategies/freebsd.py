"""FreeBSD provisioning strategy (cross-make gcc toolchains)."""

import logging

from crosskit.core.exceptions import CompilerNotFoundError, UnsupportedArchitectureError
from crosskit.cross.env import CrossEnv
from crosskit.cross.targets import Arch, TargetConfig
from crosskit.toolchain.naming import (
    apply_gcc_toolchain,
    cross_make_dir,
    cross_make_url,
    freebsd_bin_prefix,
)
from crosskit.toolchain.strategy import ToolchainProvisioner

logger = logging.getLogger(__name__)

SUPPORTED_ARCHES = (
    Arch.X86_64,
    Arch.AARCH64,
    Arch.POWERPC64,
    Arch.POWERPC64LE,
    Arch.RISCV64,
)


class FreeBsdProvisioner(ToolchainProvisioner):
    """Strategy for *-unknown-freebsd targets."""

    name = "FreeBSD"

    def setup(self, target: TargetConfig, config, host) -> CrossEnv:
        if target.arch not in SUPPORTED_ARCHES:
            raise UnsupportedArchitectureError(str(target.arch), "freebsd")

        bin_prefix = freebsd_bin_prefix(target.arch, config.freebsd_version)
        folder = f"{bin_prefix}-cross"
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

        logger.info(
            f"Configured FreeBSD {config.freebsd_version} toolchain for {target.triple}"
        )
        return env
