"""
macOS provisioning strategy.

On a macOS host the native toolchain is used, pointed at the requested SDK.
On a Linux host an osxcross bundle (clang, cctools linker and SDK) is
downloaded and wired in.
"""

import logging
from pathlib import Path

from crosskit.core.exceptions import (
    CompilerNotFoundError,
    CrossCompilationNotSupportedError,
)
from crosskit.core.platform import ubuntu_version
from crosskit.cross.env import CrossEnv
from crosskit.cross.targets import TargetConfig
from crosskit.toolchain.apple import AppleSdkType, resolve_sdk
from crosskit.toolchain.naming import (
    DEFAULT_UBUNTU_VERSION,
    find_file_by_pattern,
    setup_cmake,
    setup_darwin_linker_library_path,
)
from crosskit.toolchain.runner import runner_required, setup_rosetta_runner
from crosskit.toolchain.strategy import ToolchainProvisioner

logger = logging.getLogger(__name__)

OSXCROSS_VERSION = "v0.2.6"
OSXCROSS_RELEASES = "https://github.com/zijiren233/osxcross/releases/download"
OSXCROSS_DEPLOYMENT_TARGET = "10.12"

_OSXCROSS_HOST_ARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}


def osxcross_url(sdk_suffix: str, host_arch: str, ubuntu: str) -> str:
    url_arch = "x86_64" if host_arch == "amd64" else host_arch
    return (
        f"{OSXCROSS_RELEASES}/{OSXCROSS_VERSION}/"
        f"osxcross-{sdk_suffix}-linux-{url_arch}-gnu-ubuntu-{ubuntu}.tar.gz"
    )


def _wire_sdkroot(env: CrossEnv, sdk: Path) -> None:
    env.set_sdkroot(sdk)
    env.add_rustflag(f"-C link-arg=--sysroot={sdk}")


class DarwinProvisioner(ToolchainProvisioner):
    """Strategy for *-apple-darwin targets."""

    name = "macOS"

    def setup(self, target: TargetConfig, config, host) -> CrossEnv:
        if host.is_darwin:
            return self._setup_native(target, config, host)
        if host.is_linux:
            return self._setup_osxcross(target, config, host)
        raise CrossCompilationNotSupportedError("darwin", host.os)

    def _setup_native(self, target: TargetConfig, config, host) -> CrossEnv:
        env = CrossEnv()

        if runner_required(target, config.command, host):
            setup_rosetta_runner(env, target.arch, target.triple, host)

        sdk = resolve_sdk(
            config.macos_sdk_path, AppleSdkType.MACOSX, config.macos_sdk_version
        )
        if sdk is not None:
            _wire_sdkroot(env, sdk)
            logger.info(f"Using macOS SDK at {sdk}")

        setup_cmake(env, config.cmake_generator, host.is_windows)
        logger.info(f"Using native macOS toolchain for {target.triple}")
        return env

    def _setup_osxcross(self, target: TargetConfig, config, host) -> CrossEnv:
        host_arch = _OSXCROSS_HOST_ARCH.get(host.arch)
        if host_arch is None:
            raise CrossCompilationNotSupportedError("darwin", f"{host.os}/{host.arch}")

        sdk_suffix = config.macos_sdk_version.replace(".", "-")
        osxcross_dir = config.cross_compiler_dir / (
            f"osxcross-{sdk_suffix}-{host_arch}-{OSXCROSS_VERSION}"
        )
        bin_dir = osxcross_dir / "bin"

        if not bin_dir.exists():
            ubuntu = ubuntu_version() or DEFAULT_UBUNTU_VERSION
            self.installer.download_and_extract(
                osxcross_url(sdk_suffix, host_arch, ubuntu), osxcross_dir
            )

        env = CrossEnv()
        setup_darwin_linker_library_path(env, osxcross_dir)

        env.set_env("OSXCROSS_MP_INC", "1")
        env.set_env("MACOSX_DEPLOYMENT_TARGET", OSXCROSS_DEPLOYMENT_TARGET)
        if config.verbose:
            env.set_env("OCDEBUG", "1")

        clang = find_file_by_pattern(bin_dir, f"{target.arch}-apple-darwin*-clang")
        if clang is None:
            raise CompilerNotFoundError(bin_dir)
        tool_prefix = clang.name[: -len("-clang")]

        env.set_cc(f"{tool_prefix}-clang")
        env.set_cxx(f"{tool_prefix}-clang++")
        env.set_ar(f"{tool_prefix}-ar")
        env.set_linker(f"{tool_prefix}-clang")
        env.add_path(bin_dir)
        env.add_path(osxcross_dir / "clang" / "bin")
        env.set_env("COMPILER_PATH", str(bin_dir))

        linker = bin_dir / f"{tool_prefix}-ld"
        env.add_ldflag(f"-fuse-ld={linker}")
        env.add_rustflag(f"-C link-arg=-fuse-ld={linker}")

        sdk_dir = osxcross_dir / "SDK"
        if sdk_dir.is_dir():
            for entry in sorted(sdk_dir.iterdir()):
                if entry.name.startswith("MacOSX"):
                    _wire_sdkroot(env, entry)
                    break

        setup_cmake(env, config.cmake_generator, host.is_windows)
        logger.info(
            f"Configured osxcross toolchain (SDK {config.macos_sdk_version}) "
            f"for {target.triple}"
        )
        return env
