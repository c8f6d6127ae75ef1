"""
Cross-compilation target registry.

This module defines the closed set of operating systems, architectures,
C libraries and ABIs crosskit knows how to provision, plus the static table
mapping every supported Rust target triple to those properties.

The registry is built once at import time and exposed read-only. Nothing
mutates it afterwards.

Example:
    >>> from crosskit.cross.targets import TARGETS
    >>> config = TARGETS.get("aarch64-unknown-linux-musl")
    >>> config.arch.value, config.libc.value
    ('aarch64', 'musl')
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from collections.abc import Mapping
from typing import Dict, Iterator, List, Optional


class Os(Enum):
    """Target operating system family."""

    LINUX = "linux"
    WINDOWS = "windows"
    FREEBSD = "freebsd"
    DARWIN = "darwin"
    IOS = "ios"
    IOS_SIM = "ios-sim"
    ANDROID = "android"

    def __str__(self) -> str:
        return self.value


class Arch(Enum):
    """Target CPU architecture."""

    AARCH64 = "aarch64"
    ARM64E = "arm64e"
    ARMV5 = "armv5"
    ARMV6 = "armv6"
    ARMV7 = "armv7"
    I586 = "i586"
    I686 = "i686"
    LOONGARCH64 = "loongarch64"
    MIPS = "mips"
    MIPSEL = "mipsel"
    MIPS64 = "mips64"
    MIPS64EL = "mips64el"
    POWERPC64 = "powerpc64"
    POWERPC64LE = "powerpc64le"
    RISCV64 = "riscv64"
    S390X = "s390x"
    X86_64 = "x86_64"
    X86_64H = "x86_64h"

    def __str__(self) -> str:
        return self.value

    @property
    def qemu_binary_name(self) -> Optional[str]:
        """
        Name of the qemu-user binary that emulates this architecture.

        Returns:
            Binary name such as 'qemu-arm', or None when no emulator exists
        """
        if self in (Arch.ARMV5, Arch.ARMV6, Arch.ARMV7):
            return "qemu-arm"
        if self in (Arch.I586, Arch.I686):
            return "qemu-i386"
        if self is Arch.POWERPC64:
            return "qemu-ppc64"
        if self is Arch.POWERPC64LE:
            return "qemu-ppc64le"
        if self in (Arch.ARM64E, Arch.X86_64H):
            return None
        return f"qemu-{self.value}"


class Libc(Enum):
    """C library flavour."""

    MUSL = "musl"
    GNU = "gnu"
    MSVC = "msvc"

    def __str__(self) -> str:
        return self.value


class Abi(Enum):
    """ARM floating point ABI suffix."""

    EABI = "eabi"
    EABIHF = "eabihf"

    def __str__(self) -> str:
        return self.value


# ============================================================================
# Version Catalogues
# ============================================================================

SUPPORTED_GLIBC_VERSIONS = (
    "2.28",
    "2.31",
    "2.32",
    "2.33",
    "2.34",
    "2.35",
    "2.36",
    "2.37",
    "2.38",
    "2.39",
    "2.40",
    "2.41",
    "2.42",
)
DEFAULT_GLIBC_VERSION = "2.28"

SUPPORTED_IPHONE_SDK_VERSIONS = (
    "17.0",
    "17.2",
    "17.4",
    "17.5",
    "18.0",
    "18.1",
    "18.2",
    "18.4",
    "18.5",
    "26.0",
    "26.1",
    "26.2",
)
DEFAULT_IPHONE_SDK_VERSION = "26.2"

SUPPORTED_MACOS_SDK_VERSIONS = (
    "14.0",
    "14.2",
    "14.4",
    "14.5",
    "15.0",
    "15.1",
    "15.2",
    "15.4",
    "15.5",
    "26.0",
    "26.1",
    "26.2",
)
DEFAULT_MACOS_SDK_VERSION = "26.2"

SUPPORTED_FREEBSD_VERSIONS = ("13", "14", "15")
DEFAULT_FREEBSD_VERSION = "13"

DEFAULT_CROSS_DEPS_VERSION = "v0.7.4"
DEFAULT_NDK_VERSION = "r27d"
DEFAULT_QEMU_VERSION = "v10.2.0"


# ============================================================================
# Target Table
# ============================================================================


@dataclass(frozen=True)
class TargetConfig:
    """
    Properties of a single target triple.

    Attributes:
        triple: Rust target triple (e.g., 'armv7-unknown-linux-musleabihf')
        os: Operating system family
        arch: CPU architecture
        libc: C library, when the triple encodes one
        abi: ARM float ABI, when the triple encodes one
    """

    triple: str
    os: Os
    arch: Arch
    libc: Optional[Libc] = None
    abi: Optional[Abi] = None

    @property
    def env_suffix(self) -> str:
        """Triple with dashes replaced, as used in CC_<target> style keys."""
        return self.triple.replace("-", "_")


_L, _W, _F, _D = Os.LINUX, Os.WINDOWS, Os.FREEBSD, Os.DARWIN
_MUSL, _GNU, _MSVC = Libc.MUSL, Libc.GNU, Libc.MSVC
_EABI, _EABIHF = Abi.EABI, Abi.EABIHF

_TARGET_TABLE = (
    # Linux musl
    TargetConfig("aarch64-unknown-linux-musl", _L, Arch.AARCH64, _MUSL),
    TargetConfig("arm-unknown-linux-musleabi", _L, Arch.ARMV6, _MUSL, _EABI),
    TargetConfig("arm-unknown-linux-musleabihf", _L, Arch.ARMV6, _MUSL, _EABIHF),
    TargetConfig("armv5te-unknown-linux-musleabi", _L, Arch.ARMV5, _MUSL, _EABI),
    TargetConfig("armv7-unknown-linux-musleabi", _L, Arch.ARMV7, _MUSL, _EABI),
    TargetConfig("armv7-unknown-linux-musleabihf", _L, Arch.ARMV7, _MUSL, _EABIHF),
    TargetConfig("i586-unknown-linux-musl", _L, Arch.I586, _MUSL),
    TargetConfig("i686-unknown-linux-musl", _L, Arch.I686, _MUSL),
    TargetConfig("loongarch64-unknown-linux-musl", _L, Arch.LOONGARCH64, _MUSL),
    TargetConfig("mips-unknown-linux-musl", _L, Arch.MIPS, _MUSL),
    TargetConfig("mipsel-unknown-linux-musl", _L, Arch.MIPSEL, _MUSL),
    TargetConfig("mips64-unknown-linux-muslabi64", _L, Arch.MIPS64, _MUSL),
    TargetConfig("mips64-openwrt-linux-musl", _L, Arch.MIPS64, _MUSL),
    TargetConfig("mips64el-unknown-linux-muslabi64", _L, Arch.MIPS64EL, _MUSL),
    TargetConfig("powerpc64-unknown-linux-musl", _L, Arch.POWERPC64, _MUSL),
    TargetConfig("powerpc64le-unknown-linux-musl", _L, Arch.POWERPC64LE, _MUSL),
    TargetConfig("riscv64gc-unknown-linux-musl", _L, Arch.RISCV64, _MUSL),
    TargetConfig("s390x-unknown-linux-musl", _L, Arch.S390X, _MUSL),
    TargetConfig("x86_64-unknown-linux-musl", _L, Arch.X86_64, _MUSL),
    # Linux gnu
    TargetConfig("aarch64-unknown-linux-gnu", _L, Arch.AARCH64, _GNU),
    TargetConfig("arm-unknown-linux-gnueabi", _L, Arch.ARMV6, _GNU, _EABI),
    TargetConfig("arm-unknown-linux-gnueabihf", _L, Arch.ARMV6, _GNU, _EABIHF),
    TargetConfig("armv5te-unknown-linux-gnueabi", _L, Arch.ARMV5, _GNU, _EABI),
    TargetConfig("armv7-unknown-linux-gnueabi", _L, Arch.ARMV7, _GNU, _EABI),
    TargetConfig("armv7-unknown-linux-gnueabihf", _L, Arch.ARMV7, _GNU, _EABIHF),
    TargetConfig("i586-unknown-linux-gnu", _L, Arch.I586, _GNU),
    TargetConfig("i686-unknown-linux-gnu", _L, Arch.I686, _GNU),
    TargetConfig("loongarch64-unknown-linux-gnu", _L, Arch.LOONGARCH64, _GNU),
    TargetConfig("mips-unknown-linux-gnu", _L, Arch.MIPS, _GNU),
    TargetConfig("mipsel-unknown-linux-gnu", _L, Arch.MIPSEL, _GNU),
    TargetConfig("mips64-unknown-linux-gnuabi64", _L, Arch.MIPS64, _GNU),
    TargetConfig("mips64el-unknown-linux-gnuabi64", _L, Arch.MIPS64EL, _GNU),
    TargetConfig("powerpc64-unknown-linux-gnu", _L, Arch.POWERPC64, _GNU),
    TargetConfig("powerpc64le-unknown-linux-gnu", _L, Arch.POWERPC64LE, _GNU),
    TargetConfig("riscv64gc-unknown-linux-gnu", _L, Arch.RISCV64, _GNU),
    TargetConfig("s390x-unknown-linux-gnu", _L, Arch.S390X, _GNU),
    TargetConfig("x86_64-unknown-linux-gnu", _L, Arch.X86_64, _GNU),
    # Windows
    TargetConfig("i686-pc-windows-gnu", _W, Arch.I686, _GNU),
    TargetConfig("x86_64-pc-windows-gnu", _W, Arch.X86_64, _GNU),
    TargetConfig("i686-pc-windows-msvc", _W, Arch.I686, _MSVC),
    TargetConfig("x86_64-pc-windows-msvc", _W, Arch.X86_64, _MSVC),
    TargetConfig("aarch64-pc-windows-msvc", _W, Arch.AARCH64, _MSVC),
    # FreeBSD
    TargetConfig("x86_64-unknown-freebsd", _F, Arch.X86_64),
    TargetConfig("aarch64-unknown-freebsd", _F, Arch.AARCH64),
    TargetConfig("powerpc64-unknown-freebsd", _F, Arch.POWERPC64),
    TargetConfig("powerpc64le-unknown-freebsd", _F, Arch.POWERPC64LE),
    TargetConfig("riscv64gc-unknown-freebsd", _F, Arch.RISCV64),
    # Darwin
    TargetConfig("x86_64-apple-darwin", _D, Arch.X86_64),
    TargetConfig("x86_64h-apple-darwin", _D, Arch.X86_64H),
    TargetConfig("aarch64-apple-darwin", _D, Arch.AARCH64),
    TargetConfig("arm64e-apple-darwin", _D, Arch.ARM64E),
    # iOS
    TargetConfig("x86_64-apple-ios", Os.IOS, Arch.X86_64),
    TargetConfig("aarch64-apple-ios", Os.IOS, Arch.AARCH64),
    TargetConfig("aarch64-apple-ios-sim", Os.IOS_SIM, Arch.AARCH64),
    # Android
    TargetConfig("aarch64-linux-android", Os.ANDROID, Arch.AARCH64),
    TargetConfig("arm-linux-androideabi", Os.ANDROID, Arch.ARMV7),
    TargetConfig("armv7-linux-androideabi", Os.ANDROID, Arch.ARMV7),
    TargetConfig("i686-linux-android", Os.ANDROID, Arch.I686),
    TargetConfig("riscv64-linux-android", Os.ANDROID, Arch.RISCV64),
    TargetConfig("x86_64-linux-android", Os.ANDROID, Arch.X86_64),
)


class TargetRegistry(Mapping):
    """
    Read-only mapping from target triple to TargetConfig.

    Args:
        configs: Target configurations; later duplicates of a triple win
    """

    def __init__(self, configs):
        table: Dict[str, TargetConfig] = {c.triple: c for c in configs}
        self._table = MappingProxyType(table)

    def __getitem__(self, triple: str) -> TargetConfig:
        return self._table[triple]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def triples(self) -> List[str]:
        """All registered triples, sorted."""
        return sorted(self._table)

    def for_os(self, os: Os) -> List[TargetConfig]:
        """Registered targets for one operating system, sorted by triple."""
        return [self._table[t] for t in self.triples() if self._table[t].os is os]


TARGETS = TargetRegistry(_TARGET_TABLE)


def get_target_config(triple: str) -> Optional[TargetConfig]:
    """
    Look up a target triple in the built-in registry.

    Args:
        triple: Rust target triple

    Returns:
        TargetConfig, or None if the triple is unknown
    """
    return TARGETS.get(triple)


__all__ = [
    "Os",
    "Arch",
    "Libc",
    "Abi",
    "TargetConfig",
    "TargetRegistry",
    "TARGETS",
    "get_target_config",
    "SUPPORTED_GLIBC_VERSIONS",
    "DEFAULT_GLIBC_VERSION",
    "SUPPORTED_IPHONE_SDK_VERSIONS",
    "DEFAULT_IPHONE_SDK_VERSION",
    "SUPPORTED_MACOS_SDK_VERSIONS",
    "DEFAULT_MACOS_SDK_VERSION",
    "SUPPORTED_FREEBSD_VERSIONS",
    "DEFAULT_FREEBSD_VERSION",
    "DEFAULT_CROSS_DEPS_VERSION",
    "DEFAULT_NDK_VERSION",
    "DEFAULT_QEMU_VERSION",
]
