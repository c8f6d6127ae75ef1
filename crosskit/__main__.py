"""
crosskit command-line entry point.

Usage: python -m crosskit [CONFIG] [options]

Most settings come from environment variables (the GitHub Action
interface); an optional YAML file supplies defaults for them.
"""

import argparse
import logging
import os
import signal
import sys
from dataclasses import replace
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import List, Optional

from crosskit.config.parser import CommandKind, CrossConfig, load_config
from crosskit.core.directory import ensure_cache_dir
from crosskit.core.download import Downloader
from crosskit.core.exceptions import CrossKitError
from crosskit.core.platform import HostPlatform, detect_host
from crosskit.cross.matcher import expand_patterns
from crosskit.orchestrator import Orchestrator
from crosskit.toolchain.installer import ToolchainInstaller

try:
    __version__ = version("crosskit")
except PackageNotFoundError:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)

# Exit codes for termination by signal (128 + signal number)
EXIT_SIGINT = 130
EXIT_SIGTERM = 143


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crosskit",
        description="crosskit - cross-compilation toolchains for cargo",
        epilog="Environment variables override values from CONFIG.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version=f"crosskit {__version__}"
    )
    parser.add_argument(
        "config",
        nargs="?",
        type=Path,
        metavar="CONFIG",
        help="Optional YAML configuration file",
    )
    parser.add_argument(
        "--command",
        "-c",
        choices=[kind.value for kind in CommandKind],
        help="Cargo command to run (overrides COMMAND)",
    )
    parser.add_argument(
        "--targets",
        "-t",
        metavar="PATTERNS",
        help="Comma separated target triples or patterns (overrides TARGETS)",
    )
    return parser


def configure_logging(verbose_level: int) -> None:
    """Configure root logging from the verbosity level."""
    if verbose_level > 0:
        level = logging.DEBUG
        format_str = "%(levelname)s [%(name)s] %(message)s"
    else:
        level = logging.INFO
        format_str = "%(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        force=True,
    )


def install_signal_handlers() -> None:
    """
    Exit immediately on SIGINT/SIGTERM.

    Partially written cache entries are left behind as ``.tmp`` files and
    are replaced on the next run.
    """

    def handler(signum, frame):
        code = EXIT_SIGINT if signum == signal.SIGINT else EXIT_SIGTERM
        sys.stderr.write("\nInterrupted, exiting\n")
        sys.stderr.flush()
        os._exit(code)

    signal.signal(signal.SIGINT, handler)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, handler)


def resolve_targets(config: CrossConfig, host: HostPlatform) -> CrossConfig:
    """
    Expand target patterns, or fall back to a plain host build.

    With no targets configured, the host triple is built with the system
    default linker and without ``--target``.
    """
    if not config.targets:
        logger.info(f"No targets specified, building for host: {host.triple}")
        return replace(
            config,
            targets=[host.triple],
            use_default_linker=True,
            no_cargo_target=True,
        )
    return replace(config, targets=expand_patterns(config.targets, allow_custom=True))


def run(args: Optional[List[str]] = None) -> int:
    """
    Run crosskit.

    Args:
        args: Arguments to parse (uses sys.argv if None)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parsed = create_parser().parse_args(args)
    configure_logging(0)

    try:
        config = load_config(parsed.config)
        if parsed.command:
            config = replace(config, command=CommandKind.parse(parsed.command))
        if parsed.targets:
            config = replace(config, targets=[parsed.targets])
        configure_logging(config.verbose_level)

        host = detect_host()
        config = resolve_targets(config, host)
        ensure_cache_dir(config.cross_compiler_dir)

        logger.info(f"Targets: {', '.join(config.targets)}")
        installer = ToolchainInstaller(Downloader(github_proxy=config.github_proxy))
        return Orchestrator(config, host, installer=installer).run()
    except (CrossKitError, OSError) as e:
        logger.error(f"Error: {e}")
        return 1


def main():
    """Main entry point for CLI."""
    install_signal_handlers()
    sys.exit(run())


if __name__ == "__main__":
    main()
