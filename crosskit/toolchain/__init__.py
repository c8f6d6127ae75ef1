"""
Toolchain provisioning for crosskit.

This package provides:
- Toolchain download and extraction into the cache
- One provisioning strategy per target operating system
- Runner setup (qemu, Docker qemu, wine, Rosetta)
- Apple SDK discovery
"""

from crosskit.toolchain.apple import AppleSdkType, find_apple_sdk
from crosskit.toolchain.installer import InstallResult, ToolchainInstaller
from crosskit.toolchain.strategies import PROVISIONERS, get_provisioner
from crosskit.toolchain.strategy import ProvisionResult, ToolchainProvisioner

__all__ = [
    "AppleSdkType",
    "InstallResult",
    "PROVISIONERS",
    "ProvisionResult",
    "ToolchainInstaller",
    "ToolchainProvisioner",
    "find_apple_sdk",
    "get_provisioner",
]
