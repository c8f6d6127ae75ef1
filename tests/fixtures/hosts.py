"""
Host platform fixtures.

Each fixture returns a HostPlatform describing a build machine, so tests
never depend on the machine they run on.
"""

import pytest

from crosskit.core.platform import HostPlatform


@pytest.fixture
def linux_host() -> HostPlatform:
    """x86_64 Linux build host."""
    return HostPlatform("linux", "x86_64", "x86_64-unknown-linux-gnu")


@pytest.fixture
def linux_arm_host() -> HostPlatform:
    """aarch64 Linux build host."""
    return HostPlatform("linux", "aarch64", "aarch64-unknown-linux-gnu")


@pytest.fixture
def darwin_host() -> HostPlatform:
    """Apple Silicon macOS build host."""
    return HostPlatform("darwin", "aarch64", "aarch64-apple-darwin")


@pytest.fixture
def darwin_intel_host() -> HostPlatform:
    """Intel macOS build host."""
    return HostPlatform("darwin", "x86_64", "x86_64-apple-darwin")


@pytest.fixture
def windows_host() -> HostPlatform:
    """x86_64 Windows build host."""
    return HostPlatform("windows", "x86_64", "x86_64-pc-windows-msvc")
