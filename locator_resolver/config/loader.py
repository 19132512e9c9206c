"""
Configuration loader for locator_resolver.

This module merges configuration from defaults, an environment profile,
an optional configuration file, environment variables and explicit
overrides. Every layer is applied key by key: a malformed value is reported
as a warning and the previous value is kept.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigParseError
from .models import ENVIRONMENT_PROFILES, Environment, ResolverConfig

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Configuration loader with support for multiple sources."""

    def __init__(self, env_prefix: str = "LOCATOR_RESOLVER_") -> None:
        """Initialize configuration loader."""
        self.config_paths = [
            Path("locator_resolver.yaml"),
            Path("locator_resolver.yml"),
            Path("locator_resolver.json"),
            Path("config/locator_resolver.yaml"),
            Path("config/locator_resolver.json"),
        ]

        # Environment variable prefix
        self.env_prefix = env_prefix

    def detect_environment(self) -> Environment:
        """Read the active environment from ``<prefix>ENV``."""
        raw = os.getenv(f"{self.env_prefix}ENV", Environment.DEVELOPMENT.value)
        try:
            return Environment(raw.strip().lower())
        except ValueError:
            self._warn(ConfigParseError(f"Unknown environment {raw!r}", "ENV", raw))
            return Environment.DEVELOPMENT

    def load_config(
        self,
        environment: Optional[Environment] = None,
        config_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> ResolverConfig:
        """
        Load configuration from all available sources.

        Args:
            environment: Target environment (read from the environment if None)
            config_file: Specific config file to load
            overrides: Explicit overrides applied last

        Returns:
            ResolverConfig with merged configuration
        """
        environment = environment or self.detect_environment()

        config = ResolverConfig()
        config = self.apply(config, ENVIRONMENT_PROFILES.get(environment, {}), "profile")

        file_config = self._load_from_file(config_file)
        if file_config:
            config = self.apply(config, file_config, "file")

        config = self.apply(config, self._load_from_environment(), "environment")

        if overrides:
            config = self.apply(config, overrides, "override")

        return config

    def apply(
        self,
        config: ResolverConfig,
        updates: Mapping[str, Any],
        source: str = "update",
    ) -> ResolverConfig:
        """
        Shallow-merge ``updates`` into ``config`` one key at a time.

        Args:
            config: Base configuration (left untouched)
            updates: Keys in snake_case or camelCase
            source: Label used in warnings

        Returns:
            New configuration with every valid update applied
        """
        current = config.model_dump()

        for key, value in updates.items():
            field = ResolverConfig.field_for(key)
            if field is None:
                self._warn(
                    ConfigParseError(f"Unknown {source} setting {key!r}", key, value)
                )
                continue

            candidate = dict(current)
            candidate[field] = value
            try:
                validated = ResolverConfig.model_validate(candidate)
            except ValidationError as e:
                errors = "; ".join(err["msg"] for err in e.errors())
                self._warn(
                    ConfigParseError(
                        f"Ignoring {source} value for {field!r} ({value!r}): {errors}",
                        field,
                        value,
                    )
                )
                continue

            current = validated.model_dump()

        return ResolverConfig.model_validate(current)

    def _load_from_file(
        self, config_file: Optional[Union[str, Path]] = None
    ) -> Optional[Dict[str, Any]]:
        """Load configuration from file."""
        if config_file:
            config_path = Path(config_file)
            if config_path.exists():
                return self._parse_config_file(config_path)
            self._warn(ConfigParseError(f"Config file not found: {config_path}"))
            return None

        for config_path in self.config_paths:
            if config_path.exists():
                return self._parse_config_file(config_path)

        return None

    def _parse_config_file(self, config_path: Path) -> Optional[Dict[str, Any]]:
        """Parse configuration file based on extension."""
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                suffix = config_path.suffix.lower()
                if suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f) or {}
                elif suffix == ".json":
                    data = json.load(f) or {}
                else:
                    raise ValueError(f"Unsupported config file format: {suffix}")
        except (OSError, ValueError, yaml.YAMLError) as e:
            self._warn(ConfigParseError(f"Failed to parse config file {config_path}: {e}"))
            return None

        if not isinstance(data, dict):
            self._warn(ConfigParseError(f"Config file {config_path} is not a mapping"))
            return None
        return data

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        for field in ResolverConfig.model_fields:
            value = os.getenv(f"{self.env_prefix}{field.upper()}")
            if value is not None:
                config[field] = self._convert_env_value(field, value)

        return config

    def _convert_env_value(self, field: str, value: str) -> Any:
        """Convert environment variable string to appropriate type."""
        annotation = ResolverConfig.model_fields[field].annotation

        if annotation is bool:
            lower = value.strip().lower()
            if lower in ("true", "yes", "1", "on"):
                return True
            if lower in ("false", "no", "0", "off"):
                return False
            return value

        if annotation is int:
            try:
                return int(value)
            except ValueError:
                return value

        if annotation == List[str]:
            return [item.strip() for item in value.split(",") if item.strip()]

        return value

    def save_config(self, config: ResolverConfig, config_file: Union[str, Path]) -> None:
        """Save configuration to file."""
        config_path = Path(config_file)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        config_data = config.model_dump(by_alias=True)

        with open(config_path, "w", encoding="utf-8") as f:
            suffix = config_path.suffix.lower()
            if suffix in (".yaml", ".yml"):
                yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
            elif suffix == ".json":
                json.dump(config_data, f, indent=2)
            else:
                raise ValueError(f"Unsupported config file format: {config_path.suffix}")

    @staticmethod
    def _warn(error: ConfigParseError) -> None:
        logger.warning(f"Configuration warning: {error.message}")
