"""
Windows provisioning strategy.

- msvc targets build with the native MSVC toolchain on a Windows host and
  cannot be cross-compiled from anywhere else
- gnu targets use the MinGW-w64 toolchains from cross-make on every host
"""

import logging

from crosskit.core.exceptions import (
    CompilerNotFoundError,
    CrossCompilationNotSupportedError,
    UnsupportedArchitectureError,
)
from crosskit.core.filesystem import ArchiveFormat
from crosskit.cross.env import CrossEnv
from crosskit.cross.targets import Arch, Libc, TargetConfig
from crosskit.toolchain.naming import (
    apply_gcc_toolchain,
    cross_make_dir,
    cross_make_url,
    setup_cmake,
    setup_cross_compile_prefix,
)
from crosskit.toolchain.runner import runner_required, setup_wine_runner
from crosskit.toolchain.strategy import ToolchainProvisioner

logger = logging.getLogger(__name__)

MINGW_ARCHES = (Arch.I686, Arch.X86_64)


class WindowsProvisioner(ToolchainProvisioner):
    """Strategy for *-pc-windows-gnu and *-pc-windows-msvc targets."""

    name = "Windows"

    def setup(self, target: TargetConfig, config, host) -> CrossEnv:
        if target.libc is Libc.MSVC:
            if host.is_windows:
                logger.info(f"Using native MSVC toolchain for {target.triple}")
                return CrossEnv()
            raise CrossCompilationNotSupportedError("windows-msvc", host.os)
        return self._setup_mingw(target, config, host)

    def _setup_mingw(self, target: TargetConfig, config, host) -> CrossEnv:
        if target.arch not in MINGW_ARCHES:
            raise UnsupportedArchitectureError(str(target.arch), "windows-gnu")

        bin_prefix = f"{target.arch}-w64-mingw32"
        folder = f"{bin_prefix}-cross"
        compiler_dir = cross_make_dir(
            config.cross_compiler_dir, folder, config.cross_deps_version
        )
        exe_ext = ".exe" if host.is_windows else ""

        gcc_path = compiler_dir / "bin" / f"{bin_prefix}-gcc{exe_ext}"
        if not gcc_path.exists():
            if host.is_windows:
                ext, archive_format = ".zip", ArchiveFormat.ZIP
            else:
                ext, archive_format = ".tgz", ArchiveFormat.TAR_GZ
            url = cross_make_url(
                config.cross_deps_version, host.download_platform(), folder, ext
            )
            self.installer.ensure(compiler_dir, url, archive_format)
            if not gcc_path.exists():
                raise CompilerNotFoundError(gcc_path)

        env = CrossEnv()
        apply_gcc_toolchain(env, compiler_dir, bin_prefix, target.triple, exe_ext)
        setup_cross_compile_prefix(env, bin_prefix)
        setup_cmake(env, config.cmake_generator, host.is_windows)

        if runner_required(target, config.command, host):
            setup_wine_runner(env, target.triple)

        logger.info(f"Configured MinGW-w64 toolchain for {target.triple}")
        return env
