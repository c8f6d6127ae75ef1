"""
Toolchain Provisioner Interface.

This module defines the interface for provisioning strategies. Each strategy
knows how to obtain and wire up a cross toolchain for one operating-system
family, producing a CrossEnv for the environment composer.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from crosskit.core.exceptions import ResolutionError
from crosskit.cross.env import CrossEnv
from crosskit.cross.targets import TargetConfig
from crosskit.toolchain.installer import ToolchainInstaller

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    """
    Outcome of provisioning one target.

    Exactly one of ``env`` and ``error`` is set. ``error`` holds expected
    resolution failures (unsupported architecture, missing SDK path,
    missing compiler); other failures propagate as exceptions.
    """

    env: Optional[CrossEnv] = None
    error: Optional[ResolutionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ToolchainProvisioner(ABC):
    """
    Abstract base class for provisioning strategies.

    Subclasses implement ``setup`` and may raise ResolutionError for
    expected failures; ``provision`` turns those into a ProvisionResult.
    """

    #: Human-readable family name used in log messages
    name = "generic"

    def __init__(self, installer: Optional[ToolchainInstaller] = None):
        self.installer = installer or ToolchainInstaller()

    @abstractmethod
    def setup(self, target: TargetConfig, config, host) -> CrossEnv:
        """
        Acquire the toolchain for ``target`` and describe it.

        Args:
            target: Registry entry for the target
            config: CrossConfig for the run
            host: HostPlatform

        Returns:
            Populated CrossEnv

        Raises:
            ResolutionError: For expected resolution failures
        """
        pass

    def provision(self, target: TargetConfig, config, host) -> ProvisionResult:
        """Run ``setup`` and capture expected failures as a value."""
        try:
            env = self.setup(target, config, host)
        except ResolutionError as e:
            logger.error(f"{self.name} toolchain setup failed for {target.triple}: {e}")
            return ProvisionResult(error=e)
        return ProvisionResult(env=env)


__all__ = ["ProvisionResult", "ToolchainProvisioner"]
