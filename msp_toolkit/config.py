"""
Configuration management for msp-toolkit.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validate

from msp_toolkit.exceptions import ConfigAlreadyExistsError, InvalidConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "msp-toolkit.yaml"
CONFIG_ENV_VAR = "MSP_TOOLKIT_CONFIG"
SCHEMA_FILE = Path(__file__).parent / "schema" / "config.schema.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of base with override merged in, recursing into nested dicts."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ToolkitConfig:
    """Locates, loads and validates the msp-toolkit configuration file."""

    DEFAULT_CONFIG = {
        "itglue": {
            "base_url": "https://api.itglue.com",
            "api_key_env": "ITGLUE_API_KEY",
            "page_size": 1000,
            "timeout": 30,
            "retry": {
                "max_attempts": 5,
                "initial_delay": 1.0,
                "backoff_factor": 2.0,
                "max_delay": 30.0,
            },
        },
        "password_policy": {
            "min_length": 12,
            "max_age_days": 365,
            "require_username": True,
            "check_reuse": True,
        },
        "dial": {
            "reference_link_text": "Site Configuration",
        },
        "cleanup": {
            "disk": {
                "older_than_days": 7,
                "paths": [
                    "%SystemRoot%\\Temp",
                    "%TEMP%",
                    "%SystemRoot%\\SoftwareDistribution\\Download",
                ],
            },
        },
        "logging": {
            "level": "INFO",
            "file": None,
        },
    }

    def __init__(self, path: Path | None = None):
        self.config_file = Path(path) if path else self.locate()
        self._config_cache: dict[str, Any] | None = None

    @staticmethod
    def locate() -> Path:
        """Resolve the config path from the environment or the working directory."""
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            return Path(env_path)
        return Path.cwd() / CONFIG_FILENAME

    def initialize(self, force: bool = False) -> None:
        """Write the default configuration file."""
        if self.config_file.exists() and not force:
            raise ConfigAlreadyExistsError(str(self.config_file))

        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w") as f:
            yaml.dump(self.DEFAULT_CONFIG, f, default_flow_style=False, sort_keys=False)
        self._config_cache = None

    def load(self) -> dict[str, Any]:
        """
        Load configuration merged over the defaults.

        A missing file is not an error: RMM jobs usually run with defaults plus
        environment variables.

        Raises:
            InvalidConfigError: If the file is not valid YAML or fails schema validation
        """
        if self._config_cache is not None:
            return self._config_cache

        if not self.config_file.exists():
            logger.debug(f"No config file at {self.config_file}, using defaults")
            self._config_cache = copy.deepcopy(self.DEFAULT_CONFIG)
            return self._config_cache

        try:
            with open(self.config_file) as f:
                user_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfigError(f"{self.config_file}: {e}") from e

        if user_config is None:
            user_config = {}

        if not isinstance(user_config, dict):
            raise InvalidConfigError(f"expected a mapping, got {type(user_config).__name__}")

        config = deep_merge(self.DEFAULT_CONFIG, user_config)
        self._validate_config_schema(config)
        logger.debug(f"Loaded configuration from {self.config_file}")

        self._config_cache = config
        return config

    def _validate_config_schema(self, config: dict) -> None:
        """Validate config against JSON schema."""
        schema = json.loads(SCHEMA_FILE.read_text())
        try:
            validate(instance=config, schema=schema)
        except ValidationError as e:
            path = ".".join(str(p) for p in e.path) or "(root)"
            raise InvalidConfigError(f"{e.message} (at {path})") from e
