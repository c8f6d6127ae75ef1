"""
Per-target build orchestration.

Each target moves through a fixed sequence of states:

    IDLE -> PREREQ_CHECK -> PROVISION -> COMPOSE -> INVOKE -> DONE

Any failure moves the target to FAILED and stops the run; targets that
already finished stay finished. Targets are processed strictly one after
another because toolchain downloads share the cache directory.
"""

import json
import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from crosskit.cargo import (
    cargo_command,
    ensure_rust_src,
    ensure_target_installed,
    resolve_build_std,
    run_command,
)
from crosskit.core.exceptions import CommandFailedError, CrossKitError
from crosskit.cross.env import CrossEnv, compose, preconfigured_env
from crosskit.cross.targets import TARGETS, TargetRegistry
from crosskit.toolchain.installer import ToolchainInstaller
from crosskit.toolchain.strategies import get_provisioner

logger = logging.getLogger(__name__)

CommandRunner = Callable[[List[str], Mapping[str, str]], None]


class TargetState(Enum):
    """Lifecycle of one target within a run."""

    IDLE = "idle"
    PREREQ_CHECK = "prereq_check"
    PROVISION = "provision"
    COMPOSE = "compose"
    INVOKE = "invoke"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TargetResult:
    """
    Outcome of processing one target.

    Attributes:
        target: Rust target triple
        state: DONE on success, FAILED otherwise
        env: Composed environment (empty if composition was not reached)
        error: The failure, when state is FAILED
        failed_in: State the target was in when it failed
        elapsed: Wall-clock seconds spent on the target
    """

    target: str
    state: TargetState = TargetState.IDLE
    env: Dict[str, str] = field(default_factory=dict)
    error: Optional[Exception] = None
    failed_in: Optional[TargetState] = None
    elapsed: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.state is TargetState.DONE

    @property
    def exit_code(self) -> int:
        """0 on success, the failing command's code, or 1."""
        if self.succeeded:
            return 0
        if isinstance(self.error, CommandFailedError) and self.error.exit_code:
            return self.error.exit_code
        return 1


class Orchestrator:
    """
    Runs the configured cargo command for every target.

    Args:
        config: CrossConfig for the run
        host: HostPlatform
        registry: Target registry used to classify triples
        installer: Installer shared by all provisioners
        runner: Callable executing a command with an environment
        environ: Process environment; defaults to os.environ
    """

    def __init__(
        self,
        config,
        host,
        registry: TargetRegistry = TARGETS,
        installer: Optional[ToolchainInstaller] = None,
        runner: CommandRunner = run_command,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.config = config
        self.host = host
        self.registry = registry
        self.installer = installer
        self.runner = runner
        self.environ = os.environ if environ is None else environ
        self.results: List[TargetResult] = []

    def _installer(self) -> ToolchainInstaller:
        if self.installer is None:
            self.installer = ToolchainInstaller()
        return self.installer

    def _provision(self, target: str) -> CrossEnv:
        if self.config.use_default_linker:
            logger.warning(f"Using system default linker for {target}")
            return CrossEnv()

        env = preconfigured_env(target, self.environ)
        if env is not None:
            return env

        if self.config.no_toolchain_setup:
            logger.info(f"Skipping toolchain setup for {target}")
            return CrossEnv()

        target_config = self.registry.get(target)
        if target_config is None:
            logger.warning(
                f"No specific toolchain configuration for {target}, using default"
            )
            return CrossEnv()

        provisioner = get_provisioner(target_config.os, self._installer())
        result = provisioner.provision(target_config, self.config, self.host)
        if not result.ok:
            raise result.error
        return result.env

    def run_target(self, target: str) -> TargetResult:
        """
        Check prerequisites, provision, compose and invoke for one target.

        Expected failures are captured in the returned TargetResult.
        """
        result = TargetResult(target=target)
        start_time = time.time()
        logger.info(f"Executing {self.config.command.value} for {target}...")

        try:
            result.state = TargetState.PREREQ_CHECK
            auto_build_std = ensure_target_installed(target, self.config.toolchain)

            result.state = TargetState.PROVISION
            cross_env = self._provision(target)
            if auto_build_std and not self.config.build_std and not cross_env.build_std:
                cross_env.set_build_std("true")

            build_std = resolve_build_std(self.config.build_std, cross_env.build_std)
            if build_std:
                ensure_rust_src(target, self.config.toolchain)

            result.state = TargetState.COMPOSE
            result.env = compose(
                cross_env,
                target,
                self.host,
                self.config.overrides(),
                self.environ,
            )

            result.state = TargetState.INVOKE
            argv = cargo_command(self.config, target, build_std)
            logger.info(f"Running: {' '.join(argv)}")
            self.runner(argv, result.env)

        except (CrossKitError, OSError) as e:
            result.failed_in = result.state
            result.state = TargetState.FAILED
            result.error = e
            logger.error(f"{self.config.command.value.capitalize()} failed for target: {target}")
            logger.error(f"Error: {e}")
        else:
            result.state = TargetState.DONE
            logger.info(f"{self.config.command.value.capitalize()} successful: {target}")

        result.elapsed = time.time() - start_time
        return result

    def run(self, targets: Optional[Sequence[str]] = None) -> int:
        """
        Process targets in order, stopping at the first failure.

        Args:
            targets: Targets to process; defaults to the configured list

        Returns:
            Process exit code
        """
        targets = list(self.config.targets if targets is None else targets)
        start_time = time.time()

        for index, target in enumerate(targets, 1):
            logger.info(f"[{index}/{len(targets)}] Processing target: {target}")
            result = self.run_target(target)
            self.results.append(result)
            if not result.succeeded:
                return result.exit_code

        elapsed = time.time() - start_time
        logger.info(
            f"All {self.config.command.value} operations completed successfully!"
        )
        logger.info(f"Total time: {elapsed:.0f}s")
        write_github_output(targets, self.environ)
        return 0


def write_github_output(
    targets: Sequence[str], environ: Optional[Mapping[str, str]] = None
) -> None:
    """Append ``targets=<json list>`` to $GITHUB_OUTPUT when running in Actions."""
    if environ is None:
        environ = os.environ
    output_path = environ.get("GITHUB_OUTPUT")
    if not output_path:
        return
    try:
        payload = json.dumps(list(targets), separators=(",", ":"))
        with open(output_path, "a", encoding="utf-8") as f:
            f.write(f"targets={payload}\n")
    except OSError as e:
        logger.warning(f"Failed to write GitHub output: {e}")


__all__ = [
    "Orchestrator",
    "TargetResult",
    "TargetState",
    "write_github_output",
]
