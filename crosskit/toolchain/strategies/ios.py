"""
iOS provisioning strategy.

Device and simulator targets are built with the native toolchain on a
macOS host, or with a cctools-port "ioscross" bundle on a Linux host.
"""

import logging

from crosskit.core.exceptions import (
    CompilerNotFoundError,
    CrossCompilationNotSupportedError,
    UnsupportedArchitectureError,
)
from crosskit.core.platform import ubuntu_version
from crosskit.cross.env import CrossEnv
from crosskit.cross.targets import Arch, Os, TargetConfig
from crosskit.toolchain.apple import AppleSdkType, resolve_sdk
from crosskit.toolchain.naming import (
    DEFAULT_UBUNTU_VERSION,
    setup_darwin_linker_library_path,
)
from crosskit.toolchain.strategy import ToolchainProvisioner

logger = logging.getLogger(__name__)

CCTOOLS_VERSION = "v0.1.9"
CCTOOLS_RELEASES = "https://github.com/zijiren233/cctools-port/releases/download"

# Minimum iOS version C code is compiled for; matches the Rust targets
IOS_DEPLOYMENT_TARGET = "12.0"

_IOS_ARCH_PREFIX = {
    Arch.AARCH64: "arm64",
    Arch.X86_64: "x86_64",
}


def is_simulator(target: TargetConfig) -> bool:
    """Simulator targets are the *-ios-sim ones plus every x86_64 iOS target."""
    return target.os is Os.IOS_SIM or target.arch is Arch.X86_64


def deployment_target_var(simulator: bool) -> str:
    if simulator:
        return "IPHONE_SIMULATOR_DEPLOYMENT_TARGET"
    return "IPHONEOS_DEPLOYMENT_TARGET"


class IosProvisioner(ToolchainProvisioner):
    """Strategy for *-apple-ios and *-apple-ios-sim targets."""

    name = "iOS"

    def setup(self, target: TargetConfig, config, host) -> CrossEnv:
        simulator = is_simulator(target)
        if host.is_darwin:
            return self._setup_native(target, config, simulator)
        if host.is_linux:
            return self._setup_ioscross(target, config, host, simulator)
        raise CrossCompilationNotSupportedError("ios", host.os)

    def _setup_native(self, target: TargetConfig, config, simulator: bool) -> CrossEnv:
        env = CrossEnv()

        if simulator:
            sdk = resolve_sdk(
                config.iphone_simulator_sdk_path,
                AppleSdkType.IPHONESIMULATOR,
                config.iphone_sdk_version,
            )
        else:
            sdk = resolve_sdk(
                config.iphone_sdk_path, AppleSdkType.IPHONEOS, config.iphone_sdk_version
            )

        if sdk is not None:
            env.set_sdkroot(sdk)
            env.add_rustflag(f"-C link-arg=--sysroot={sdk}")
            logger.info(f"Using iPhone SDK at {sdk}")

        env.set_env(deployment_target_var(simulator), IOS_DEPLOYMENT_TARGET)
        logger.info(f"Using native macOS toolchain for {target.triple}")
        return env

    def _setup_ioscross(
        self, target: TargetConfig, config, host, simulator: bool
    ) -> CrossEnv:
        arch_prefix = _IOS_ARCH_PREFIX.get(target.arch)
        if arch_prefix is None:
            raise UnsupportedArchitectureError(str(target.arch), "ios")

        sdk_suffix = config.iphone_sdk_version.replace(".", "-")
        name = f"ios-{arch_prefix}-cross"
        if simulator:
            name += "-simulator"
        name += f"-{CCTOOLS_VERSION}-{sdk_suffix}"
        compiler_dir = config.cross_compiler_dir / name

        tool_prefix = f"{arch_prefix}-apple-darwin11"
        bin_dir = compiler_dir / "bin"
        clang_path = bin_dir / f"{tool_prefix}-clang"

        if not clang_path.exists():
            ubuntu = ubuntu_version() or DEFAULT_UBUNTU_VERSION
            sdk_type = "iPhoneSimulator" if simulator else "iPhoneOS"
            url = (
                f"{CCTOOLS_RELEASES}/{CCTOOLS_VERSION}/ioscross-{sdk_type}{sdk_suffix}"
                f"-{arch_prefix}-{host.download_platform()}-gnu-ubuntu-{ubuntu}.tar.gz"
            )
            self.installer.download_and_extract(url, compiler_dir)
            if not clang_path.exists():
                raise CompilerNotFoundError(clang_path)

        env = CrossEnv()
        setup_darwin_linker_library_path(env, compiler_dir)

        env.set_cc(f"{tool_prefix}-clang")
        env.set_cxx(f"{tool_prefix}-clang++")
        env.set_ar(f"{tool_prefix}-ar")
        env.set_linker(f"{tool_prefix}-clang")
        env.add_path(bin_dir)
        env.add_path(compiler_dir / "clang" / "bin")

        linker = bin_dir / f"{tool_prefix}-ld"
        env.add_ldflag(f"-fuse-ld={linker}")
        env.add_rustflag(f"-C link-arg=-fuse-ld={linker}")

        sdk_dir = compiler_dir / "SDK"
        if sdk_dir.is_dir():
            for entry in sorted(sdk_dir.iterdir()):
                if entry.is_dir():
                    env.set_sdkroot(entry)
                    break

        env.set_env(deployment_target_var(simulator), IOS_DEPLOYMENT_TARGET)
        logger.info(f"Configured iOS toolchain for {target.triple}")
        return env
