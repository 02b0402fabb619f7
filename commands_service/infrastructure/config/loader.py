"""
Configuration loading and saving utilities.

Configuration is merged from, in increasing precedence: built-in defaults,
a YAML or JSON file, a ``.env`` file, and process environment variables.
"""

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

from .models import ApplicationConfig


def _parse_bool(value: str) -> bool:
    """Parse boolean value from string."""
    return value.lower() in ('true', '1', 'yes', 'on', 'enabled')


# Environment variable -> (dotted config path, converter)
ENV_MAPPINGS: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "DEBUG": ("debug", _parse_bool),
    "ENVIRONMENT": ("environment", str),
    "HOST": ("server.host", str),
    "PORT": ("server.port", int),
    "AWS_REGION": ("aws.region", str),
    "AWS_ACCESS_KEY_ID": ("aws.access_key_id", str),
    "AWS_SECRET_ACCESS_KEY": ("aws.secret_access_key", str),
    "AWS_SESSION_TOKEN": ("aws.session_token", str),
    "AWS_ENDPOINT_URL": ("aws.endpoint_url", str),
    "AWS_MAX_ATTEMPTS": ("aws.max_attempts", int),
    "STORE_BACKEND": ("store.backend", str),
    "COMMANDS_TABLE_NAME": ("store.table_name", str),
    "QUEUE_BACKEND": ("queues.backend", str),
    "QUEUE_URL": ("queues.inbound_queue_url", str),
    "ORCHESTRATOR_QUEUE_URL": ("queues.orchestrator_queue_url", str),
    "POLLER_ENABLED": ("poller.enabled", _parse_bool),
    "POLL_INTERVAL": ("poller.poll_interval", float),
    "POLL_MAX_MESSAGES": ("poller.max_messages", int),
    "POLL_WAIT_TIME": ("poller.wait_time_seconds", int),
    "POLL_VISIBILITY_TIMEOUT": ("poller.visibility_timeout", int),
    "POLL_FAILURE_POLICY": ("poller.failure_policy", str),
    "LOG_LEVEL": ("logging.level", str),
    "LOG_DIR": ("logging.log_directory", str),
    "LOG_FILE_ENABLED": ("logging.file_enabled", _parse_bool),
}


class ConfigLoader:
    """Configuration loader supporting files, dotenv and environment variables."""

    def __init__(self, env_prefix: str = "", env_file: Optional[str] = ".env") -> None:
        """
        Args:
            env_prefix: Prefix prepended to every environment variable name
            env_file: Dotenv file loaded before reading the environment,
                None to skip it
        """
        self._env_prefix = env_prefix
        self._env_file = env_file

    def load_config(self, config_file: Optional[str] = None) -> ApplicationConfig:
        """
        Load configuration from file and environment variables.

        Args:
            config_file: Path to configuration file (optional)

        Returns:
            Loaded and validated configuration
        """
        config_data: Dict[str, Any] = {}

        if config_file:
            config_data = self._load_from_file(config_file)

        # Real environment variables always win over the dotenv file
        if self._env_file and Path(self._env_file).is_file():
            load_dotenv(self._env_file, override=False)

        env_overrides = self._load_from_environment()
        config_data = self._merge_configs(config_data, env_overrides)

        config = ApplicationConfig.from_dict(config_data)
        config.config_file_path = config_file

        return config

    def save_config(self, config: ApplicationConfig, file_path: str, format: str = "yaml") -> None:
        """
        Save configuration to file.

        Args:
            config: Configuration to save
            file_path: Output file path
            format: File format (yaml or json)
        """
        config_data = config.to_dict()
        config_data.pop('config_file_path', None)

        if format.lower() == "yaml":
            self._save_yaml(config_data, file_path)
        elif format.lower() == "json":
            self._save_json(config_data, file_path)
        else:
            raise ValueError(f"Unsupported format: {format}")

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from file."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {file_path}")

        if path.suffix.lower() in ['.yaml', '.yml']:
            return self._load_yaml(file_path)
        elif path.suffix.lower() == '.json':
            return self._load_json(file_path)
        else:
            raise ValueError(
                f"Unsupported configuration file format: {path.suffix}")

    def _load_yaml(self, file_path: str) -> Dict[str, Any]:
        """Load YAML configuration file."""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {file_path}: {e}")

    def _load_json(self, file_path: str) -> Dict[str, Any]:
        """Load JSON configuration file."""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)  # type: ignore[no-any-return]
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {file_path}: {e}")

    def _save_yaml(self, data: Dict[str, Any], file_path: str) -> None:
        """Save configuration as YAML."""
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, indent=2)
        except OSError as e:
            raise ValueError(f"Error writing YAML to {file_path}: {e}")

    def _save_json(self, data: Dict[str, Any], file_path: str) -> None:
        """Save configuration as JSON."""
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise ValueError(f"Error writing JSON to {file_path}: {e}")

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration overrides from environment variables."""
        config: Dict[str, Any] = {}

        for name, (config_path, converter) in ENV_MAPPINGS.items():
            env_var = f"{self._env_prefix}{name}"
            value = os.getenv(env_var)
            if value is None or value == "":
                continue
            try:
                self._set_nested_value(config, config_path, converter(value))
            except (ValueError, TypeError) as e:
                raise ValueError(
                    f"Invalid value for {env_var}: {value} ({e})")

        return config

    def _set_nested_value(self, config: Dict[str, Any], path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation."""
        keys = path.split('.')
        current = config

        for key in keys[:-1]:
            current = current.setdefault(key, {})

        current[keys[-1]] = value

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result
