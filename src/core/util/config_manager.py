import logging
import os
import re
from typing import Any

import yaml
from pydantic import ValidationError

from core.schema.reset_config_schema import ResetServiceConfig
from exception import DeviceConfigError

logger = logging.getLogger("ConfigManager")

ENV_VAR_PATTERN = re.compile(r"\$\{(\w+)(?::-([^\}]*))?\}")  # Match ${VAR_NAME:-default} or ${VAR_NAME}


class ConfigManager:

    @staticmethod
    def load_yaml_file(path: str) -> dict:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def parse_env_var_with_default(value: str) -> bool | int | float | str | None:
        match = ENV_VAR_PATTERN.fullmatch(value.strip())
        if not match:
            return value

        var_name = match.group(1)
        default_value = match.group(2)

        resolved_value = os.getenv(var_name) or default_value
        if resolved_value is not None:
            return ConfigManager._parse_value_by_type(resolved_value)
        return None

    @staticmethod
    def resolve_env_vars(node: Any) -> Any:
        """Walk a loaded YAML tree and resolve every `${VAR:-default}` string."""
        if isinstance(node, dict):
            return {k: ConfigManager.resolve_env_vars(v) for k, v in node.items()}
        if isinstance(node, list):
            return [ConfigManager.resolve_env_vars(v) for v in node]
        if isinstance(node, str):
            return ConfigManager.parse_env_var_with_default(node)
        return node

    @staticmethod
    def load_reset_config(config_path: str) -> ResetServiceConfig:
        """Load, resolve and validate the reset service configuration"""
        raw_config: dict = ConfigManager.resolve_env_vars(ConfigManager.load_yaml_file(config_path))
        return ConfigManager.build_reset_config(raw_config)

    @staticmethod
    def build_reset_config(raw_config: dict) -> ResetServiceConfig:
        try:
            config = ResetServiceConfig.model_validate(raw_config)
        except ValidationError as e:
            raise DeviceConfigError(f"Invalid reset service config: {e}") from e

        seen: set[str] = set()
        for descriptor in config.machine_list:
            if descriptor.code in seen:
                raise DeviceConfigError(f"Duplicate machine code {descriptor.code}", descriptor.code)
            seen.add(descriptor.code)

        if not config.machine_list:
            logger.warning("[Config] No machines configured; reset cycles will be no-ops")

        return config

    @staticmethod
    def _parse_value_by_type(value: str) -> bool | int | float | str:
        if value.lower() in ["true", "false"]:
            return value.lower() == "true"
        if ConfigManager._is_int(value):
            return int(value)
        if ConfigManager._is_float(value):
            return float(value)
        return value

    @staticmethod
    def _is_int(value: str) -> bool:
        try:
            int(value)
            return True
        except ValueError:
            return False

    @staticmethod
    def _is_float(value: str) -> bool:
        try:
            float(value)
            return True
        except ValueError:
            return False
