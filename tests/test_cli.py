"""Tests for the command-line interface."""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from mail_gate import __version__
from mail_gate.cli import app

runner = CliRunner()


@pytest.fixture
def config_dir():
    """Create a config directory with a small allow list."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir)
        with open(path / "config.yaml", "w") as f:
            yaml.safe_dump(
                {
                    "gate": {
                        "allow_list": ["friend@example.com", "coworker@example.com"],
                        "destination": "inbox@corp",
                    }
                },
                f,
            )
        yield path


def invoke(config_dir: Path, *args: str):
    return runner.invoke(app, ["--config-dir", str(config_dir), *args])


class TestVersion:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestCheck:
    def test_allowed(self, config_dir: Path) -> None:
        result = invoke(config_dir, "check", "friend@example.com")
        assert result.exit_code == 0
        assert "allowed" in result.stdout

    def test_denied(self, config_dir: Path) -> None:
        result = invoke(config_dir, "check", "stranger@example.com")
        assert result.exit_code == 1
        assert "denied" in result.stdout
        assert "Address not allowed" in result.stdout

    def test_case_mismatch_denied(self, config_dir: Path) -> None:
        result = invoke(config_dir, "check", "Friend@Example.com")
        assert result.exit_code == 1

    def test_invalid_config(self, config_dir: Path) -> None:
        (config_dir / "config.yaml").write_text("gate:\n  mode: sometimes\n")
        result = invoke(config_dir, "check", "friend@example.com")
        assert result.exit_code == 1
        assert "Invalid configuration" in result.stdout


class TestRoute:
    def test_forwarded(self, config_dir: Path) -> None:
        result = invoke(config_dir, "route", "coworker@example.com")
        assert result.exit_code == 0
        assert "forwarded" in result.stdout
        assert "inbox@corp" in result.stdout

    def test_rejected(self, config_dir: Path) -> None:
        result = invoke(config_dir, "route", "stranger@example.com")
        assert result.exit_code == 0
        assert "rejected" in result.stdout
        assert "Address not allowed" in result.stdout


class TestPolicyShow:
    def test_lists_addresses(self, config_dir: Path) -> None:
        result = invoke(config_dir, "policy", "show")
        assert result.exit_code == 0
        assert "allow" in result.stdout
        assert "friend@example.com" in result.stdout
        assert "coworker@example.com" in result.stdout

    def test_empty_block_list(self, config_dir: Path) -> None:
        (config_dir / "config.yaml").write_text("gate:\n  mode: block\n")
        result = invoke(config_dir, "policy", "show")
        assert result.exit_code == 0
        assert "Address is blocked" in result.stdout
        assert "No addresses configured" in result.stdout


class TestServe:
    def test_invalid_log_level(self, config_dir: Path) -> None:
        with patch("mail_gate.server.GateServer") as server_cls:
            result = invoke(config_dir, "serve", "--log-level", "verbose")

        assert result.exit_code == 1
        assert "Invalid log level" in result.stdout
        server_cls.assert_not_called()
