"""
Unit tests for the host platform module.

Tests cover:
- HostPlatform helpers
- OS and architecture detection with mocking
- Host triple detection through rustc
- Cache behavior
"""

import subprocess
from unittest.mock import Mock, patch

import pytest

from crosskit.core.platform import (
    HostPlatform,
    _detect_arch,
    _detect_os,
    _detect_rustc_host,
    clear_host_cache,
    detect_host,
    ubuntu_version,
)
from crosskit.cross.targets import Arch


class TestHostPlatform:
    """Tests for HostPlatform."""

    def test_download_platform(self, linux_host):
        """Test the release asset platform string."""
        assert linux_host.download_platform() == "linux-x86_64"

    def test_os_flags(self, linux_host, darwin_host, windows_host):
        """Test the OS predicates."""
        assert linux_host.is_linux and not linux_host.is_darwin
        assert darwin_host.is_darwin and not darwin_host.is_windows
        assert windows_host.is_windows and not windows_host.is_linux

    def test_path_separator(self, linux_host, windows_host):
        """Test PATH separators per OS."""
        assert linux_host.path_separator == ":"
        assert windows_host.path_separator == ";"

    def test_x86_64_runs_32_bit_x86(self, linux_host):
        """Test x86_64 hosts run x86 binaries natively."""
        assert linux_host.can_run_natively(Arch.X86_64)
        assert linux_host.can_run_natively(Arch.I686)
        assert not linux_host.can_run_natively(Arch.AARCH64)

    def test_aarch64_runs_arm(self, linux_arm_host):
        """Test aarch64 hosts run 32-bit ARM binaries natively."""
        assert linux_arm_host.can_run_natively(Arch.AARCH64)
        assert linux_arm_host.can_run_natively(Arch.ARMV7)
        assert not linux_arm_host.can_run_natively(Arch.X86_64)

    def test_other_arch_exact_match(self):
        """Test other hosts only run their own architecture."""
        host = HostPlatform("linux", "riscv64", "riscv64gc-unknown-linux-gnu")
        assert host.can_run_natively(Arch.RISCV64)
        assert not host.can_run_natively(Arch.X86_64)


class TestDetectOs:
    """Tests for OS detection."""

    @pytest.mark.parametrize(
        "system,expected",
        [
            ("Linux", "linux"),
            ("Darwin", "darwin"),
            ("Windows", "windows"),
            ("MINGW64_NT-10.0", "windows"),
            ("FreeBSD", "freebsd"),
            ("SunOS", "unknown"),
        ],
    )
    def test_detect_os(self, system, expected):
        """Test platform.system() values are normalized."""
        with patch("crosskit.core.platform.platform.system", return_value=system):
            assert _detect_os() == expected


class TestDetectArch:
    """Tests for architecture detection."""

    @pytest.mark.parametrize(
        "machine,expected",
        [
            ("x86_64", "x86_64"),
            ("AMD64", "x86_64"),
            ("arm64", "aarch64"),
            ("aarch64", "aarch64"),
            ("i686", "i686"),
            ("armv7l", "armv7"),
            ("ppc64le", "powerpc64le"),
            ("riscv64", "riscv64"),
        ],
    )
    def test_detect_arch(self, machine, expected):
        """Test machine names are normalized to Rust spelling."""
        with patch("crosskit.core.platform.platform.machine", return_value=machine):
            assert _detect_arch() == expected


class TestDetectRustcHost:
    """Tests for reading the host triple from rustc."""

    def test_parses_host_line(self):
        """Test the host: line of rustc -vV is used."""
        output = "rustc 1.80.0\nbinary: rustc\nhost: aarch64-apple-darwin\nrelease: 1.80.0\n"
        result = Mock(returncode=0, stdout=output)
        with patch("crosskit.core.platform.subprocess.run", return_value=result):
            assert _detect_rustc_host() == "aarch64-apple-darwin"

    def test_missing_rustc(self):
        """Test a missing rustc yields None."""
        with patch(
            "crosskit.core.platform.subprocess.run", side_effect=FileNotFoundError()
        ):
            assert _detect_rustc_host() is None

    def test_timeout(self):
        """Test a hanging rustc yields None."""
        with patch(
            "crosskit.core.platform.subprocess.run",
            side_effect=subprocess.TimeoutExpired("rustc", 5),
        ):
            assert _detect_rustc_host() is None

    def test_failure(self):
        """Test a failing rustc yields None."""
        result = Mock(returncode=1, stdout="")
        with patch("crosskit.core.platform.subprocess.run", return_value=result):
            assert _detect_rustc_host() is None


class TestDetectHost:
    """Tests for detect_host caching."""

    def setup_method(self):
        clear_host_cache()

    def teardown_method(self):
        clear_host_cache()

    def test_fallback_triple(self):
        """Test a triple is synthesized when rustc is unavailable."""
        with patch("crosskit.core.platform._detect_os", return_value="linux"), patch(
            "crosskit.core.platform._detect_arch", return_value="x86_64"
        ), patch("crosskit.core.platform._detect_rustc_host", return_value=None):
            host = detect_host()

        assert host == HostPlatform("linux", "x86_64", "x86_64-unknown-linux")

    def test_detection_is_cached(self):
        """Test detection only runs once until the cache is cleared."""
        with patch(
            "crosskit.core.platform._detect_os", return_value="linux"
        ) as mock_os, patch(
            "crosskit.core.platform._detect_arch", return_value="x86_64"
        ), patch(
            "crosskit.core.platform._detect_rustc_host",
            return_value="x86_64-unknown-linux-gnu",
        ):
            first = detect_host()
            second = detect_host()
            clear_host_cache()
            detect_host()

        assert first is second
        assert mock_os.call_count == 2


class TestUbuntuVersion:
    """Tests for Ubuntu release lookup."""

    def test_version(self):
        """Test the release is returned on Ubuntu."""
        with patch("crosskit.core.platform.distro.id", return_value="ubuntu"), patch(
            "crosskit.core.platform.distro.version", return_value="22.04"
        ):
            assert ubuntu_version() == "22.04"

    def test_unknown(self):
        """Test an empty version becomes None."""
        with patch("crosskit.core.platform.distro.id", return_value="ubuntu"), patch(
            "crosskit.core.platform.distro.version", return_value=""
        ):
            assert ubuntu_version() is None

    def test_other_distribution(self):
        """Test a non-Ubuntu host yields None so callers use the default."""
        with patch("crosskit.core.platform.distro.id", return_value="debian"), patch(
            "crosskit.core.platform.distro.version", return_value="12"
        ):
            assert ubuntu_version() is None

    def test_undotted_version(self):
        """Test a release without a minor number is rejected."""
        with patch("crosskit.core.platform.distro.id", return_value="ubuntu"), patch(
            "crosskit.core.platform.distro.version", return_value="24"
        ):
            assert ubuntu_version() is None
