"""
Tests for the command-line entry point.
"""

from unittest.mock import patch

import pytest

from crosskit.__main__ import create_parser, resolve_targets, run
from crosskit.config.parser import CommandKind, CrossConfig
from crosskit.core.exceptions import NoMatchingTargetsError


class TestCreateParser:
    """Test argument parsing."""

    def test_defaults(self):
        """Test everything is optional."""
        args = create_parser().parse_args([])
        assert args.config is None
        assert args.command is None
        assert args.targets is None

    def test_invalid_command(self):
        """Test unknown commands are rejected by argparse."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--command", "publish"])


class TestResolveTargets:
    """Test resolve_targets."""

    def test_no_targets_builds_host(self, linux_host):
        """Test an empty target list becomes a plain host build."""
        config = resolve_targets(CrossConfig(), linux_host)
        assert config.targets == ["x86_64-unknown-linux-gnu"]
        assert config.use_default_linker
        assert config.no_cargo_target

    def test_patterns_expanded(self, linux_host):
        """Test patterns expand in order and custom triples are kept."""
        config = resolve_targets(
            CrossConfig(targets=["x86_64-unknown-linux-musl,my-custom-target"]),
            linux_host,
        )
        assert config.targets == ["x86_64-unknown-linux-musl", "my-custom-target"]
        assert not config.use_default_linker

    def test_glob_without_matches(self, linux_host):
        """Test a glob matching nothing is an error."""
        with pytest.raises(NoMatchingTargetsError):
            resolve_targets(CrossConfig(targets=["*-unknown-haiku"]), linux_host)


class TestRun:
    """Test run."""

    def test_runs_orchestrator(self, clean_env, cache_dir, linux_host):
        """Test configuration flows from the environment and flags into the run."""
        clean_env.setenv("CROSS_COMPILER_DIR", str(cache_dir))
        clean_env.setenv("TARGETS", "aarch64-unknown-linux-musl")

        with patch("crosskit.__main__.detect_host", return_value=linux_host), patch(
            "crosskit.__main__.Orchestrator"
        ) as mock_orchestrator:
            mock_orchestrator.return_value.run.return_value = 0
            code = run(["--command", "test", "--targets", "x86_64-unknown-linux-musl"])

        assert code == 0
        config, host = mock_orchestrator.call_args[0]
        assert host is linux_host
        assert config.command is CommandKind.TEST
        assert config.targets == ["x86_64-unknown-linux-musl"]
        assert config.cross_compiler_dir == cache_dir

    def test_configuration_error(self, clean_env, tmp_path):
        """Test configuration errors exit with 1."""
        assert run([str(tmp_path / "missing.yaml")]) == 1

    def test_exit_code_propagates(self, clean_env, cache_dir, linux_host):
        """Test the orchestrator's exit code is returned."""
        clean_env.setenv("CROSS_COMPILER_DIR", str(cache_dir))
        with patch("crosskit.__main__.detect_host", return_value=linux_host), patch(
            "crosskit.__main__.Orchestrator"
        ) as mock_orchestrator:
            mock_orchestrator.return_value.run.return_value = 101
            assert run([]) == 101
