"""
Android provisioning strategy.

Downloads the Android NDK, points the compilers at its prebuilt clang
wrappers and writes a small CMake toolchain file that selects the right
ABI and API level before including the NDK's own toolchain file.
"""

import logging
from pathlib import Path
from typing import List

from crosskit.core.exceptions import CompilerNotFoundError, UnsupportedArchitectureError
from crosskit.core.filesystem import ArchiveFormat, atomic_write
from crosskit.cross.env import CrossEnv
from crosskit.cross.targets import Arch, TargetConfig
from crosskit.toolchain.naming import setup_cmake, to_cmake_path
from crosskit.toolchain.strategy import ToolchainProvisioner

logger = logging.getLogger(__name__)

NDK_REPOSITORY = "https://dl.google.com/android/repository"
ANDROID_PLATFORM = "android-24"

# arch -> (clang target prefix with API level, Android ABI name)
_ANDROID_ARCHES = {
    Arch.ARMV7: ("armv7a-linux-androideabi24", "armeabi-v7a"),
    Arch.AARCH64: ("aarch64-linux-android24", "arm64-v8a"),
    Arch.I686: ("i686-linux-android24", "x86"),
    Arch.X86_64: ("x86_64-linux-android24", "x86_64"),
    Arch.RISCV64: ("riscv64-linux-android35", "riscv64"),
}

CMAKE_WRAPPER_TEMPLATE = """# Auto-generated Android toolchain wrapper
set(ANDROID_ABI "{abi}")
set(ANDROID_PLATFORM "{platform}")
set(ANDROID_NDK "{ndk}")
include("{toolchain}")
"""


def prebuilt_candidates(host) -> List[str]:
    """Prebuilt directory names to try, most specific first."""
    if host.is_darwin:
        return [f"darwin-{host.arch}", "darwin-x86_64", "darwin"]
    return [f"{host.os}-{host.arch}", f"{host.os}-x86_64"]


def find_prebuilt_bin_dir(prebuilt_dir: Path, host) -> Path:
    """
    Locate the NDK's prebuilt clang ``bin`` directory for this host.

    Raises:
        CompilerNotFoundError: If no prebuilt directory holds a ``bin``
    """
    for candidate in prebuilt_candidates(host):
        bin_dir = prebuilt_dir / candidate / "bin"
        if bin_dir.exists():
            return bin_dir

    if prebuilt_dir.is_dir():
        for entry in sorted(prebuilt_dir.iterdir()):
            bin_dir = entry / "bin"
            if bin_dir.exists():
                return bin_dir

    raise CompilerNotFoundError(prebuilt_dir)


class AndroidProvisioner(ToolchainProvisioner):
    """Strategy for *-linux-android* targets."""

    name = "Android"

    def setup(self, target: TargetConfig, config, host) -> CrossEnv:
        if target.arch not in _ANDROID_ARCHES:
            raise UnsupportedArchitectureError(str(target.arch), "android")
        clang_prefix, android_abi = _ANDROID_ARCHES[target.arch]

        ndk_dir = config.cross_compiler_dir / f"android-ndk-{host.os}-{config.ndk_version}"
        url = f"{NDK_REPOSITORY}/android-ndk-{config.ndk_version}-{host.os}.zip"
        self.installer.ensure(ndk_dir, url, ArchiveFormat.ZIP)

        prebuilt_dir = ndk_dir / "toolchains" / "llvm" / "prebuilt"
        clang_bin_dir = find_prebuilt_bin_dir(prebuilt_dir, host)

        env = CrossEnv()
        clang_ext = ".cmd" if host.is_windows else ""
        env.set_cc(f"{clang_prefix}-clang{clang_ext}")
        env.set_cxx(f"{clang_prefix}-clang++{clang_ext}")
        env.set_ar("llvm-ar.exe" if host.is_windows else "llvm-ar")
        env.set_linker(f"{clang_prefix}-clang{clang_ext}")
        env.add_path(clang_bin_dir)

        cmake_dir = ndk_dir / "build" / "cmake"
        wrapper = cmake_dir / "wrappers" / f"android-{android_abi}.cmake"
        if not wrapper.exists():
            atomic_write(
                wrapper,
                CMAKE_WRAPPER_TEMPLATE.format(
                    abi=android_abi,
                    platform=ANDROID_PLATFORM,
                    ndk=to_cmake_path(ndk_dir),
                    toolchain=to_cmake_path(cmake_dir / "android.toolchain.cmake"),
                ),
            )
        env.set_env("CMAKE_TOOLCHAIN_FILE", to_cmake_path(wrapper))
        setup_cmake(env, config.cmake_generator, host.is_windows)

        llvm_dir = clang_bin_dir.parent
        libclang = "libclang.dll" if host.is_windows else "libclang.so"
        for lib_dir in (llvm_dir / "lib", llvm_dir / "lib64", llvm_dir / "musl" / "lib"):
            if (lib_dir / libclang).exists():
                env.set_env("LIBCLANG_PATH", str(lib_dir))
                break

        logger.info(f"Configured Android toolchain for {target.triple}")
        return env
