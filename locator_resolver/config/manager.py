"""
Configuration manager for locator_resolver.

This module provides the runtime configuration service: layered loading,
fail-safe runtime updates, reset and change notification. Unlike a module
level singleton, a ConfigService is constructed explicitly and handed to
the components that need it.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Union

from .loader import ConfigLoader
from .models import Environment, ResolverConfig

logger = logging.getLogger(__name__)


class ConfigService:
    """Holds the effective resolver configuration."""

    def __init__(
        self,
        overrides: Optional[Mapping[str, Any]] = None,
        environment: Optional[Environment] = None,
        config_file: Optional[Union[str, Path]] = None,
        loader: Optional[ConfigLoader] = None,
    ) -> None:
        """
        Initialize and load the configuration.

        Args:
            overrides: Explicit overrides applied on top of all other sources
            environment: Environment profile (read from the environment if None)
            config_file: Optional JSON or YAML configuration file
            loader: Custom loader, mainly for tests
        """
        self._loader = loader or ConfigLoader()
        self._environment = environment
        self._config_file = config_file
        self._change_callbacks: List[Callable[[ResolverConfig], None]] = []
        self._config = self._loader.load_config(environment, config_file, overrides)

    def get_config(self) -> ResolverConfig:
        """
        Get current configuration.

        Returns:
            A copy of the effective configuration. Mutating it does not
            affect the service.
        """
        return self._config.model_copy(deep=True)

    def update_config(self, updates: Mapping[str, Any]) -> ResolverConfig:
        """
        Update configuration at runtime.

        Keys may be given in snake_case or camelCase. Malformed values and
        unknown keys are logged and ignored; the prior value is retained.

        Args:
            updates: Partial configuration

        Returns:
            The new effective configuration
        """
        self._config = self._loader.apply(self._config, updates, "update")
        self._notify_change_callbacks()

        logger.info(f"Configuration updated: {sorted(updates)}")
        return self.get_config()

    def reset_to_default(self) -> ResolverConfig:
        """
        Restore defaults, the environment profile and environment variables.

        Ad hoc updates and constructor overrides are discarded.

        Returns:
            The restored configuration
        """
        self._config = self._loader.load_config(self._environment, self._config_file)
        self._notify_change_callbacks()
        logger.info("Configuration reset to defaults")
        return self.get_config()

    def add_change_callback(self, callback: Callable[[ResolverConfig], None]) -> None:
        """
        Add callback to be called when configuration changes.

        Args:
            callback: Function receiving a copy of the new configuration
        """
        if callback not in self._change_callbacks:
            self._change_callbacks.append(callback)

    def remove_change_callback(self, callback: Callable[[ResolverConfig], None]) -> None:
        """Remove configuration change callback."""
        if callback in self._change_callbacks:
            self._change_callbacks.remove(callback)

    def export_config(self) -> str:
        """Export the effective configuration as JSON (camelCase keys)."""
        return json.dumps(self._config.model_dump(by_alias=True), indent=2)

    def _notify_change_callbacks(self) -> None:
        """Notify all change callbacks."""
        for callback in list(self._change_callbacks):
            try:
                callback(self.get_config())
            except Exception as e:
                logger.error(f"Error in configuration change callback: {e}")
