"""
Host platform detection for crosskit.

This module detects the machine crosskit runs on: operating system,
CPU architecture and the Rust host triple. Detection runs once per process.

Usage:
    from crosskit.core.platform import detect_host

    host = detect_host()
    print(host.download_platform())  # e.g. 'linux-x86_64'
"""

import functools
import logging
import platform
import subprocess
from dataclasses import dataclass
from typing import Optional

import distro

from crosskit.cross.targets import Arch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HostPlatform:
    """
    The build host.

    Attributes:
        os: 'linux', 'darwin', 'windows' or 'freebsd'
        arch: Architecture name in Rust spelling ('x86_64', 'aarch64', ...)
        triple: Rust host triple
    """

    os: str
    arch: str
    triple: str

    def download_platform(self) -> str:
        """
        Platform string used in toolchain release asset names.

        Example:
            >>> HostPlatform("linux", "x86_64", "x86_64-unknown-linux-gnu").download_platform()
            'linux-x86_64'
        """
        return f"{self.os}-{self.arch}"

    @property
    def is_linux(self) -> bool:
        return self.os == "linux"

    @property
    def is_darwin(self) -> bool:
        return self.os == "darwin"

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def path_separator(self) -> str:
        return ";" if self.is_windows else ":"

    def can_run_natively(self, arch: Arch) -> bool:
        """
        Check whether binaries for ``arch`` run on this host without emulation.

        Args:
            arch: Target architecture

        Returns:
            True when no runner is needed
        """
        if self.arch == "x86_64":
            return arch in (Arch.X86_64, Arch.I686, Arch.I586)
        if self.arch == "aarch64":
            return arch in (Arch.AARCH64, Arch.ARMV5, Arch.ARMV6, Arch.ARMV7)
        if self.arch in ("i686", "i586"):
            return arch in (Arch.I686, Arch.I586)
        return self.arch == arch.value


def _detect_os() -> str:
    system = platform.system().lower()
    if system.startswith(("cygwin", "msys", "mingw")):
        return "windows"
    if system in ("linux", "darwin", "windows", "freebsd"):
        return system
    return "unknown"


def _detect_arch() -> str:
    machine = platform.machine().lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "x86_64"
    elif machine in ("aarch64", "arm64"):
        return "aarch64"
    elif machine in ("i386", "i486", "i586", "i686", "x86"):
        return "i686"
    elif machine.startswith("arm"):
        return "armv7"
    elif machine == "ppc64":
        return "powerpc64"
    elif machine == "ppc64le":
        return "powerpc64le"
    else:
        # s390x, riscv64, loongarch64, mips64 already use Rust spelling
        return machine


def _detect_rustc_host() -> Optional[str]:
    """Read the host triple from ``rustc -vV``."""
    try:
        result = subprocess.run(
            ["rustc", "-vV"],
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"Could not run rustc: {e}")
        return None

    if result.returncode != 0:
        return None

    for line in result.stdout.splitlines():
        if line.startswith("host:"):
            return line[len("host:") :].strip()
    return None


@functools.lru_cache(maxsize=1)
def detect_host() -> HostPlatform:
    """
    Detect the host platform.

    This function is cached; it only runs detection once per process.
    """
    os_name = _detect_os()
    arch = _detect_arch()
    triple = _detect_rustc_host() or f"{arch}-unknown-{os_name}"
    host = HostPlatform(os=os_name, arch=arch, triple=triple)
    logger.debug(f"Detected host platform: {host}")
    return host


def clear_host_cache():
    """Forget the cached host so the next detect_host() call re-detects."""
    detect_host.cache_clear()


def ubuntu_version() -> Optional[str]:
    """
    Ubuntu release of the host (e.g. '22.04').

    Returns:
        Dotted release number, or None on any other distribution or when
        it cannot be determined
    """
    if distro.id() != "ubuntu":
        return None
    version = distro.version()
    if "." not in version:
        return None
    return version


__all__ = [
    "HostPlatform",
    "detect_host",
    "clear_host_cache",
    "ubuntu_version",
]
