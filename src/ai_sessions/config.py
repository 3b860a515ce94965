"""Defaults, environment variables, and the optional env file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

_LOGGER = logging.getLogger(__name__)

DEFAULT_PROVIDER = "claude-code"
DEFAULT_DETECT_LINES = 10


def _xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        _LOGGER.warning("Ignoring %s=%r: not an integer", name, value)
        return default
    if parsed < 1:
        _LOGGER.warning("Ignoring %s=%r: must be at least 1", name, value)
        return default
    return parsed


ENV_FILE_TEMPLATE = """\
# ai-sessions settings
# Loaded by ais on startup. Variables already set in the environment win.

# Provider assumed when a transcript's format is not recognized
# AIS_DEFAULT_PROVIDER=claude-code

# Number of leading JSONL records sampled for format detection
# AIS_DETECT_LINES=10

# Log level: DEBUG, INFO, WARNING, ERROR
# AIS_LOG_LEVEL=WARNING
"""


@dataclass
class Config:
    """Runtime configuration, resolved from env vars and defaults."""

    # Env file with AIS_* overrides
    env_file: Path = field(default_factory=lambda: _xdg_config_home() / "ai-sessions" / "env")

    # Detection
    default_provider: str = field(
        default_factory=lambda: os.environ.get("AIS_DEFAULT_PROVIDER", DEFAULT_PROVIDER)
    )
    detect_sample_lines: int = field(
        default_factory=lambda: _env_int("AIS_DETECT_LINES", DEFAULT_DETECT_LINES)
    )

    # Logging
    log_level: str = field(
        default_factory=lambda: os.environ.get("AIS_LOG_LEVEL", "WARNING").upper()
    )

    @classmethod
    def load(cls, env_file: Path | None = None) -> "Config":
        """Load the env file, then resolve a Config that sees its values."""
        bootstrap = cls(env_file=env_file) if env_file else cls()
        bootstrap.load_env_file()
        return cls(env_file=bootstrap.env_file)

    def load_env_file(self) -> None:
        """Load settings from the env file into os.environ (if not already set)."""
        if not self.env_file.exists():
            return
        for line in self.env_file.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip("'\"")
            # Don't overwrite keys already in the environment
            if key and key not in os.environ:
                os.environ[key] = value

    def ensure_env_file(self) -> bool:
        """Create the env file from template if it doesn't exist. Returns True if created."""
        if self.env_file.exists():
            return False
        self.env_file.parent.mkdir(parents=True, exist_ok=True)
        self.env_file.write_text(ENV_FILE_TEMPLATE)
        self.env_file.chmod(0o600)
        return True
