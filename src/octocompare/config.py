"""Account settings from the secrets file and environment."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from dotenv import load_dotenv

DEFAULT_SECRETS_PATH = Path("secrets.yml")

ENV_OVERRIDES = {
    "key": "OCTOPUS_API_KEY",
    "mpan": "OCTOPUS_MPAN",
    "serial": "OCTOPUS_SERIAL",
    "postcode": "OCTOPUS_POSTCODE",
}


class ConfigError(Exception):
    """Missing or invalid configuration."""
    pass


@dataclass
class Config:
    """Settings for API access and comparisons."""

    key: str | None = None
    mpan: str | None = None
    serial: str | None = None
    postcode: str | None = None
    brand: str | None = None
    period: str | None = None  # bucket length, e.g. '1.week'
    payment_model: str | None = None
    loggerlevel: str = "ERROR"

    @property
    def log_level(self) -> int:
        """The configured level as a logging constant (accepts 'Logger::WARN' too)."""
        name = self.loggerlevel.rsplit(":", 1)[-1].upper()
        name = {"WARN": "WARNING", "FATAL": "CRITICAL"}.get(name, name)
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ConfigError(f"Unknown loggerlevel '{self.loggerlevel}'")
        return level

    def require_api_key(self) -> str:
        if not self.key:
            raise ConfigError(
                "Octopus API key not set.\n"
                "Get your key from https://octopus.energy/dashboard/developer/\n"
                "Then add 'key: ...' to the secrets file or set OCTOPUS_API_KEY"
            )
        return self.key

    def require_meter(self) -> tuple[str, str]:
        if not self.mpan or not self.serial:
            raise ConfigError(
                "Meter not configured: add 'mpan' and 'serial' to the secrets file "
                "or set OCTOPUS_MPAN and OCTOPUS_SERIAL"
            )
        return self.mpan, self.serial


def load_config(config_path: Path | None = None) -> Config:
    """Load settings from a YAML secrets file, then apply environment overrides.

    A missing file is only an error when a path was given explicitly.
    """
    load_dotenv()

    path = config_path or DEFAULT_SECRETS_PATH
    data = {}
    if path.exists():
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: expected a mapping of settings")
    elif config_path is not None:
        raise ConfigError(f"Secrets file not found: {path}")

    for field_name, env_var in ENV_OVERRIDES.items():
        if os.environ.get(env_var):
            data[field_name] = os.environ[env_var]

    known = Config.__dataclass_fields__
    settings = {k: str(v) for k, v in data.items() if k in known and v is not None}
    return Config(**settings)
