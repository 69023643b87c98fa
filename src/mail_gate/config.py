"""Configuration management for mail-gate."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from mail_gate.models import PolicyMode

DEFAULT_ALLOW_LIST = frozenset({"friend@example.com", "coworker@example.com"})
DEFAULT_DESTINATION = "inbox@corp"


class GateConfig(BaseModel):
    """Sender policy and routing target.

    Built once at startup and never mutated, so a single instance can be
    shared by every concurrent gate invocation.
    """

    model_config = ConfigDict(frozen=True)

    mode: PolicyMode = PolicyMode.ALLOW
    allow_list: frozenset[str] = DEFAULT_ALLOW_LIST
    block_list: frozenset[str] = frozenset()
    destination: str = DEFAULT_DESTINATION
    # Overrides the policy's own reason ("Address not allowed" / "Address is blocked")
    reject_reason: str | None = None


class RelayConfig(BaseModel):
    """Downstream SMTP relay used to forward accepted messages."""

    host: str = "localhost"
    port: int = 25
    timeout: float = 30.0
    starttls: bool = False
    username: str | None = None
    password: str | None = None


class ListenConfig(BaseModel):
    """Address the inbound SMTP host binds to."""

    host: str = "127.0.0.1"
    port: int = 8025


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_prefix="MAIL_GATE_",
        env_nested_delimiter="__",
    )

    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config" / "mail-gate")

    gate: GateConfig = Field(default_factory=GateConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    listen: ListenConfig = Field(default_factory=ListenConfig)

    log_level: str = "INFO"


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence.

    Nested dicts are merged recursively. Lists and other values are replaced,
    so a local allow_list fully replaces the base one.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_settings(config_dir: Path | None = None) -> Settings:
    """Load settings from environment and config files.

    Loads config.yaml first, then merges config.local.yaml on top if it
    exists. Environment variables (MAIL_GATE_*) fill in anything the files
    leave unset.

    Args:
        config_dir: Directory holding the YAML files. Defaults to
            ~/.config/mail-gate.
    """
    if config_dir is None:
        config_dir = Path.home() / ".config" / "mail-gate"
    config_file = config_dir / "config.yaml"
    local_config_file = config_dir / "config.local.yaml"

    file_settings: dict[str, Any] = {}

    if config_file.exists():
        file_settings = _read_yaml(config_file)

    if local_config_file.exists():
        file_settings = _deep_merge(file_settings, _read_yaml(local_config_file))

    file_settings["config_dir"] = config_dir
    return Settings(**file_settings)
