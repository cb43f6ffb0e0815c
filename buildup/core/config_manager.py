"""
Configuration management for Buildup.

Builds the immutable AgentConfig from CLI options, environment variables and
an optional YAML config file, in that order of precedence.
"""
import os
from typing import Dict, Mapping, Optional

import yaml

from buildup.upload.exceptions import ConfigurationError
from buildup.upload.models import AgentConfig


DEFAULT_CONFIG_FILE = "buildup.yaml"

UPLOAD_TOKEN_VAR = "BUILDUP_UPLOAD_TOKEN"
CONFIG_PATH_VAR = "BUILDUP_CONFIG"

# Environment variable -> overrides key
OVERRIDE_VARS = {
    "BUILDUP_API_BUILD_ENDPOINT_OVERRIDE": "apiBuildEndpoint",
    "BUILDUP_API_ERROR_ENDPOINT_OVERRIDE": "apiErrorEndpoint",
    "BUILDUP_API_TRIGGER_ENDPOINT_OVERRIDE": "apiTriggerEndpoint",
    "BUILDUP_WRAPPER_NAME_OVERRIDE": "wrapperName",
    "BUILDUP_WRAPPER_VERSION_OVERRIDE": "wrapperVersion",
}

# Keys accepted in the YAML file
CONFIG_KEYS = ("upload_token", "app_id", "variant_name", "rule_name")


class ConfigManager:
    """Manages agent configuration loading and merging operations."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = environ if environ is not None else os.environ

    def load_config(self, path: str) -> dict:
        """Load configuration from YAML file."""
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Unable to load config file {path!r}: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path!r} must contain a mapping")

        return data

    def discover_and_load_config(self, config_arg: Optional[str]) -> dict:
        """Discover config file with priority order."""

        # Priority 1: --config argument
        if config_arg:
            if os.path.exists(config_arg):
                return self.load_config(config_arg)
            raise ConfigurationError(f"Config file not found: {config_arg}")

        # Priority 2: BUILDUP_CONFIG
        env_path = self.environ.get(CONFIG_PATH_VAR)
        if env_path:
            if os.path.exists(env_path):
                return self.load_config(env_path)
            raise ConfigurationError(f"Config file not found: {env_path}")

        # Priority 3: ./buildup.yaml
        if os.path.exists(DEFAULT_CONFIG_FILE):
            return self.load_config(DEFAULT_CONFIG_FILE)

        return {}

    def get_overrides(self, file_config: Optional[dict] = None) -> Dict[str, str]:
        overrides = {}

        file_overrides = (file_config or {}).get("overrides") or {}
        for key in OVERRIDE_VARS.values():
            value = file_overrides.get(key)
            if value:
                overrides[key] = str(value)

        for var_name, key in OVERRIDE_VARS.items():
            value = self.environ.get(var_name)
            if value:
                overrides[key] = value

        return overrides

    def build_agent_config(self, config_path: Optional[str] = None, **cli_values) -> AgentConfig:
        """Merge CLI values over environment over config file."""
        file_config = self.discover_and_load_config(config_path)

        values = {key: str(file_config[key]) for key in CONFIG_KEYS if file_config.get(key)}

        env_token = self.environ.get(UPLOAD_TOKEN_VAR)
        if env_token:
            values["upload_token"] = env_token

        for key, value in cli_values.items():
            if value is None:
                continue
            values[key] = value.strip() if isinstance(value, str) else value

        return AgentConfig(overrides=self.get_overrides(file_config), **values)
