"""
Naming and wiring helpers shared by the provisioning strategies.

Covers the cross-make folder/prefix naming scheme, release URLs, the
gcc-style toolchain wiring used by Linux, FreeBSD and MinGW targets, and
small CMake/CROSS_COMPILE helpers.
"""

import logging
from pathlib import Path, PurePath
from typing import Optional

from crosskit.core.filesystem import find_executable
from crosskit.cross.env import CrossEnv, set_gcc_lib_paths, setup_sysroot_env
from crosskit.cross.matcher import glob_match
from crosskit.cross.targets import DEFAULT_GLIBC_VERSION, Arch, Libc, TargetConfig

logger = logging.getLogger(__name__)

CROSS_MAKE_RELEASES = "https://github.com/zijiren233/cross-make/releases/download"

# Used in bundle names when the host Ubuntu version cannot be determined
DEFAULT_UBUNTU_VERSION = "20.04"


# ============================================================================
# Names and URLs
# ============================================================================


def linux_bin_prefix(target: TargetConfig) -> str:
    """
    Tool prefix for a Linux target.

    Example:
        >>> linux_bin_prefix(TARGETS["armv7-unknown-linux-musleabihf"])
        'armv7-linux-musleabihf'
    """
    abi = target.abi.value if target.abi else ""
    return f"{target.arch.value}-linux-{target.libc.value}{abi}"


def linux_folder_name(target: TargetConfig, glibc_version: str) -> str:
    """
    cross-make folder name for a Linux target.

    gnu toolchains built against a non-default glibc carry the version as
    a suffix; binaries inside never do.

    Example:
        >>> linux_folder_name(TARGETS["x86_64-unknown-linux-gnu"], "2.31")
        'x86_64-linux-gnu-2.31-cross'
    """
    abi = target.abi.value if target.abi else ""
    suffix = f"{target.libc.value}{abi}"
    if target.libc is Libc.GNU and glibc_version != DEFAULT_GLIBC_VERSION:
        suffix = f"{suffix}-{glibc_version}"
    return f"{target.arch.value}-linux-{suffix}-cross"


def freebsd_bin_prefix(arch: Arch, freebsd_version: str) -> str:
    """'x86_64-unknown-freebsd13' style prefix."""
    return f"{arch.value}-unknown-freebsd{freebsd_version}"


def cross_make_url(
    deps_version: str, host_platform: str, name: str, ext: str = ".tgz"
) -> str:
    """Release asset URL for a cross-make toolchain."""
    return f"{CROSS_MAKE_RELEASES}/{deps_version}-{host_platform}/{name}{ext}"


def cross_make_dir(cross_compiler_dir: Path, name: str, deps_version: str) -> Path:
    """Cache directory for a cross-make toolchain."""
    return cross_compiler_dir / f"{name}-{deps_version}"


def to_cmake_path(path) -> str:
    """
    Convert a path to the forward-slash form CMake expects.

    Example:
        >>> to_cmake_path(PureWindowsPath(r"C:\\Users\\ci\\ndk"))
        'C:/Users/ci/ndk'
    """
    if not isinstance(path, PurePath):
        path = Path(path)
    return path.as_posix()


# ============================================================================
# Environment Wiring
# ============================================================================


def apply_gcc_toolchain(
    env: CrossEnv,
    compiler_dir: Path,
    bin_prefix: str,
    rust_target: str,
    exe_ext: str = "",
) -> None:
    """
    Wire a gcc cross toolchain into ``env``.

    Sets CC/CXX/AR/linker from ``bin_prefix``, prepends ``bin/`` to PATH and
    adds the gcc library search paths and bindgen sysroot arguments.
    """
    gcc_name = f"{bin_prefix}-gcc{exe_ext}"
    env.set_cc(gcc_name)
    env.set_cxx(f"{bin_prefix}-g++{exe_ext}")
    env.set_ar(f"{bin_prefix}-ar{exe_ext}")
    env.set_linker(gcc_name)
    env.add_path(compiler_dir / "bin")

    set_gcc_lib_paths(env, compiler_dir, bin_prefix)
    setup_sysroot_env(env, compiler_dir, bin_prefix, rust_target)


def setup_cmake(env: CrossEnv, cmake_generator: Optional[str], is_windows: bool) -> None:
    """
    Choose a CMake generator.

    An explicit generator is used on any host. On Windows hosts the
    generator is auto-detected (Visual Studio ignores CC/CXX): Ninja, then
    MinGW Makefiles, then Unix Makefiles. Elsewhere CMake's default stands.
    """
    if cmake_generator:
        env.set_env("CMAKE_GENERATOR", cmake_generator)
        return

    if not is_windows:
        return

    if find_executable("ninja"):
        generator = "Ninja"
    elif find_executable("mingw32-make"):
        generator = "MinGW Makefiles"
    else:
        generator = "Unix Makefiles"
    logger.debug(f"Selected CMake generator: {generator}")
    env.set_env("CMAKE_GENERATOR", generator)


def setup_cross_compile_prefix(env: CrossEnv, bin_prefix: str) -> None:
    """Set CROSS_COMPILE so tools resolve as ``${CROSS_COMPILE}gcc``."""
    env.set_env("CROSS_COMPILE", f"{bin_prefix}-")


def setup_darwin_linker_library_path(env: CrossEnv, compiler_dir: Path) -> None:
    """Make the bundled Apple linker's shared libraries resolvable."""
    lib_dir = compiler_dir / "lib"
    if lib_dir.exists():
        env.add_library_path(lib_dir)


def find_file_by_pattern(directory: Path, pattern: str) -> Optional[Path]:
    """
    Find the first entry in ``directory`` whose whole name matches ``pattern``.

    ``x86_64-apple-darwin*-clang`` matches ``x86_64-apple-darwin25.2-clang``
    but not ``x86_64-apple-darwin25.2-clang++``.

    Returns:
        Matching path, or None
    """
    if not directory.is_dir():
        return None
    for entry in sorted(directory.iterdir()):
        if glob_match(pattern, entry.name):
            return entry
    return None


__all__ = [
    "CROSS_MAKE_RELEASES",
    "DEFAULT_UBUNTU_VERSION",
    "apply_gcc_toolchain",
    "cross_make_dir",
    "cross_make_url",
    "find_file_by_pattern",
    "freebsd_bin_prefix",
    "linux_bin_prefix",
    "linux_folder_name",
    "setup_cmake",
    "setup_cross_compile_prefix",
    "setup_darwin_linker_library_path",
    "to_cmake_path",
]
