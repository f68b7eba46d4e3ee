"""Connection and UI settings.

Sources, later ones winning:
  1. ``config.toml`` in the user config directory
  2. environment: SPLUNK_BASE_URL, SPLUNK_TOKEN, SPLUNK_VERIFY_SSL
"""

from __future__ import annotations

import getpass
import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomli_w
from platformdirs import user_config_path

from spelunk.errors import ConfigError

logger = logging.getLogger(__name__)

APP_NAME = "spelunk"
CONFIG_FILENAME = "config.toml"

_TRUE = ("1", "true", "yes", "y", "on")


def default_config_path() -> Path:
    return user_config_path(APP_NAME, appauthor=False) / CONFIG_FILENAME


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE


def load_config_data(path: Path) -> dict[str, Any]:
    """Load raw TOML data; an unreadable or malformed file yields ``{}``."""
    if not path.exists():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("ignoring config file %s: %s", path, e)
        return {}


def write_config_data(path: Path, data: dict[str, Any]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as f:
            tomli_w.dump(data, f)
    except OSError as e:
        raise ConfigError(f"Cannot write config file {path}: {e}") from e


@dataclass
class Config:
    base_url: str = ""
    token: str = ""
    verify_ssl: bool = False
    theme: str | None = None
    poll_interval: float = 0.25
    result_count: int = 100
    timeout: float = 10.0

    @classmethod
    def load(cls, path: Path | None = None, environ: dict[str, str] | None = None) -> Config:
        path = path or default_config_path()
        env = os.environ if environ is None else environ
        config = cls()
        data = load_config_data(path)
        if data:
            logger.info("loading config from %s", path)
            config.merge(data)

        if "SPLUNK_BASE_URL" in env:
            config.base_url = env["SPLUNK_BASE_URL"]
        if "SPLUNK_TOKEN" in env:
            config.token = env["SPLUNK_TOKEN"]
        if "SPLUNK_VERIFY_SSL" in env:
            config.verify_ssl = _parse_bool(env["SPLUNK_VERIFY_SSL"])
        return config

    def merge(self, data: dict[str, Any]) -> None:
        """Apply the recognised keys of a parsed config file."""
        try:
            if "splunk_base_url" in data:
                self.base_url = str(data["splunk_base_url"])
            if "splunk_token" in data:
                self.token = str(data["splunk_token"])
            if "splunk_verify_ssl" in data:
                self.verify_ssl = _parse_bool(data["splunk_verify_ssl"])
            if "theme" in data:
                self.theme = str(data["theme"])
            if "poll_interval" in data:
                self.poll_interval = max(0.05, float(data["poll_interval"]))
            if "result_count" in data:
                self.result_count = max(1, int(data["result_count"]))
            if "timeout" in data:
                self.timeout = max(0.1, float(data["timeout"]))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid config value: {e}") from e

    def validate(self) -> None:
        if not self.base_url:
            raise ConfigError(
                "Splunk Base URL is not configured.\n"
                "Run 'spelunk config' to set up your credentials."
            )
        if not self.token:
            raise ConfigError(
                "Splunk Token is not configured.\n"
                "Run 'spelunk config' to set up your credentials."
            )


def save_theme(theme_name: str, path: Path | None = None) -> None:
    """Persist *theme_name*, keeping every other key of the config file."""
    path = path or default_config_path()
    data = load_config_data(path)
    data["theme"] = theme_name
    write_config_data(path, data)


def run_wizard(path: Path | None = None, *, prompt=input, secret=getpass.getpass) -> Path:
    """Interactive ``spelunk config``: ask for credentials and write them."""
    path = path or default_config_path()
    print("Welcome to the spelunk configuration wizard!")
    print()

    base_url = prompt("Enter Splunk Base URL: ").strip()
    token = secret("Enter Splunk Token (hidden): ").strip()
    answer = prompt("Verify SSL? [Y/n]: ").strip().lower()
    verify_ssl = answer not in ("n", "no", "false")

    data = load_config_data(path)
    data.update(
        {
            "splunk_base_url": base_url,
            "splunk_token": token,
            "splunk_verify_ssl": verify_ssl,
        }
    )
    write_config_data(path, data)
    print()
    print(f"Configuration saved to {path}")
    return path
