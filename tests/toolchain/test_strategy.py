"""
Tests for the provisioner interface and strategy selection.
"""

import pytest

from crosskit.core.exceptions import CompilerNotFoundError, DownloadError
from crosskit.cross.env import CrossEnv
from crosskit.cross.targets import TARGETS, Os
from crosskit.toolchain.installer import ToolchainInstaller
from crosskit.toolchain.strategies import (
    AndroidProvisioner,
    IosProvisioner,
    LinuxProvisioner,
    get_provisioner,
)
from crosskit.toolchain.strategy import ProvisionResult, ToolchainProvisioner


class StaticProvisioner(ToolchainProvisioner):
    name = "static"

    def __init__(self, outcome, installer=None):
        super().__init__(installer)
        self.outcome = outcome

    def setup(self, target, config, host):
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class TestProvisionResult:
    """Test ToolchainProvisioner.provision."""

    def test_success(self, make_config, linux_host):
        """Test a returned env becomes an ok result."""
        env = CrossEnv(cc="gcc")
        result = StaticProvisioner(env).provision(
            TARGETS["x86_64-unknown-linux-musl"], make_config(), linux_host
        )
        assert result.ok
        assert result.env is env
        assert result.error is None

    def test_resolution_error_captured(self, make_config, linux_host):
        """Test resolution errors are returned, not raised."""
        error = CompilerNotFoundError("/cache/bin/gcc")
        result = StaticProvisioner(error).provision(
            TARGETS["x86_64-unknown-linux-musl"], make_config(), linux_host
        )
        assert not result.ok
        assert result.error is error
        assert result.env is None

    def test_other_errors_propagate(self, make_config, linux_host):
        """Test download failures are raised to the caller."""
        with pytest.raises(DownloadError):
            StaticProvisioner(DownloadError("https://x", "boom")).provision(
                TARGETS["x86_64-unknown-linux-musl"], make_config(), linux_host
            )

    def test_default_installer(self):
        """Test a real installer is created when none is given."""
        assert isinstance(StaticProvisioner(CrossEnv()).installer, ToolchainInstaller)

    def test_default_result(self):
        """Test an empty result counts as ok."""
        assert ProvisionResult().ok


class TestGetProvisioner:
    """Test get_provisioner."""

    def test_by_os(self):
        """Test each OS family maps to its strategy."""
        installer = ToolchainInstaller()
        assert isinstance(get_provisioner(Os.LINUX, installer), LinuxProvisioner)
        assert isinstance(get_provisioner(Os.IOS_SIM, installer), IosProvisioner)
        assert isinstance(get_provisioner(Os.ANDROID, installer), AndroidProvisioner)

    def test_shares_installer(self):
        """Test the installer is passed through."""
        installer = ToolchainInstaller()
        assert get_provisioner(Os.FREEBSD, installer).installer is installer
