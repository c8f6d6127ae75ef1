"""
Provisioning strategies package.

One strategy per operating-system family. ``get_provisioner`` selects the
strategy for a target's OS.
"""

from typing import Optional

from crosskit.cross.targets import Os
from crosskit.toolchain.installer import ToolchainInstaller
from crosskit.toolchain.strategies.android import AndroidProvisioner
from crosskit.toolchain.strategies.darwin import DarwinProvisioner
from crosskit.toolchain.strategies.freebsd import FreeBsdProvisioner
from crosskit.toolchain.strategies.ios import IosProvisioner
from crosskit.toolchain.strategies.linux import LinuxProvisioner
from crosskit.toolchain.strategies.windows import WindowsProvisioner
from crosskit.toolchain.strategy import ToolchainProvisioner

PROVISIONERS = {
    Os.LINUX: LinuxProvisioner,
    Os.WINDOWS: WindowsProvisioner,
    Os.FREEBSD: FreeBsdProvisioner,
    Os.DARWIN: DarwinProvisioner,
    Os.IOS: IosProvisioner,
    Os.IOS_SIM: IosProvisioner,
    Os.ANDROID: AndroidProvisioner,
}


def get_provisioner(
    os: Os, installer: Optional[ToolchainInstaller] = None
) -> ToolchainProvisioner:
    """
    Create the provisioning strategy for an operating system.

    Args:
        os: Target operating system
        installer: Installer shared by the strategy's downloads

    Returns:
        ToolchainProvisioner instance
    """
    return PROVISIONERS[os](installer)


__all__ = [
    "PROVISIONERS",
    "AndroidProvisioner",
    "DarwinProvisioner",
    "FreeBsdProvisioner",
    "IosProvisioner",
    "LinuxProvisioner",
    "WindowsProvisioner",
    "get_provisioner",
]
