"""
Centralized configuration management for the XML Catalog system.

This module provides the ConfigManager class that serves as the single source of
truth for overlay storage location, fetch behavior, export options and logging,
with environment variable handling and an optional JSON/YAML settings file.
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass, field

import yaml

from ..interfaces import ConfigurationManagerInterface
from ..exceptions import ConfigurationError
from ..models import MAX_SLOTS, STORE_VERSION
from ..storage.backends import FileStorageBackend
from ..storage.overlay_store import DEFAULT_STORAGE_KEY, OverlayStore


_TRUE_VALUES = ('true', '1', 'yes', 'on')
_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def _parse_bool(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)


def _env_bool(name: str, default: bool) -> bool:
    return _parse_bool(os.environ.get(name), default)


@dataclass
class StorageConfig:
    """Overlay store location with environment variable support."""
    directory: Path = field(default_factory=lambda: Path.home() / '.xml_catalog')
    storage_key: str = DEFAULT_STORAGE_KEY
    version: str = STORE_VERSION

    @classmethod
    def from_environment(cls) -> 'StorageConfig':
        """Create storage configuration from environment variables."""
        directory = os.environ.get('XML_CATALOG_STORAGE_DIR')
        return cls(
            directory=Path(directory).expanduser() if directory else Path.home() / '.xml_catalog',
            storage_key=os.environ.get('XML_CATALOG_STORAGE_KEY', cls.storage_key)
        )


@dataclass
class FetchConfig:
    """URL loading parameters with environment variable support."""
    timeout_seconds: float = 30.0

    @classmethod
    def from_environment(cls) -> 'FetchConfig':
        """Create fetch configuration from environment variables."""
        raw_timeout = os.environ.get('XML_CATALOG_FETCH_TIMEOUT', str(cls.timeout_seconds))
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ConfigurationError(f"XML_CATALOG_FETCH_TIMEOUT must be a number, got {raw_timeout!r}")
        return cls(timeout_seconds=timeout)


@dataclass
class ExportConfig:
    """Export parameters with environment variable support."""
    root_tag: str = "CATALOG"
    record_tag: str = "record"
    csv_escape_quotes: bool = True

    @classmethod
    def from_environment(cls) -> 'ExportConfig':
        """Create export configuration from environment variables."""
        return cls(
            root_tag=os.environ.get('XML_CATALOG_EXPORT_ROOT_TAG', cls.root_tag),
            record_tag=os.environ.get('XML_CATALOG_EXPORT_RECORD_TAG', cls.record_tag),
            csv_escape_quotes=_env_bool('XML_CATALOG_CSV_ESCAPE_QUOTES', cls.csv_escape_quotes)
        )


class ConfigManager(ConfigurationManagerInterface):
    """
    Centralized configuration manager serving as single source of truth.

    Resolution order, lowest to highest precedence:
    - dataclass defaults
    - environment variables
    - optional settings file (sections "storage", "fetch", "export", "logging")
    """

    def __init__(self, settings_path: Optional[Union[str, Path]] = None):
        """
        Initialize the centralized configuration manager.

        Args:
            settings_path: Optional JSON or YAML settings file. Falls back to XML_CATALOG_SETTINGS.
        """
        self.logger = logging.getLogger(__name__)

        self.storage_config = StorageConfig.from_environment()
        self.fetch_config = FetchConfig.from_environment()
        self.export_config = ExportConfig.from_environment()
        self.log_level = os.environ.get('XML_CATALOG_LOG_LEVEL', 'INFO').upper()

        if settings_path is None:
            settings_path = os.environ.get('XML_CATALOG_SETTINGS')
        self.settings_path = Path(settings_path) if settings_path else None
        if self.settings_path is not None:
            self._apply_settings_file(self.settings_path)

        self.logger.info(f"ConfigManager initialized with storage directory: {self.storage_config.directory}")
        self.logger.debug(f"Storage key: {self.storage_config.storage_key}")

    def _apply_settings_file(self, path: Path) -> None:
        if not path.exists():
            raise ConfigurationError(f"Settings file not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as file:
                if path.suffix.lower() in ['.yaml', '.yml']:
                    settings = yaml.safe_load(file) or {}
                elif path.suffix.lower() == '.json':
                    settings = json.load(file)
                else:
                    raise ConfigurationError(f"Unsupported file format: {path.suffix}")
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to parse settings file {path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to read settings file {path}: {e}")

        if not isinstance(settings, dict):
            raise ConfigurationError(f"Settings file {path} must contain a mapping")

        storage = settings.get('storage') or {}
        if 'directory' in storage:
            self.storage_config.directory = Path(str(storage['directory'])).expanduser()
        if 'storage_key' in storage:
            self.storage_config.storage_key = str(storage['storage_key'])

        fetch = settings.get('fetch') or {}
        if 'timeout_seconds' in fetch:
            try:
                self.fetch_config.timeout_seconds = float(fetch['timeout_seconds'])
            except (TypeError, ValueError):
                raise ConfigurationError(f"fetch.timeout_seconds must be a number in {path}")

        export = settings.get('export') or {}
        if 'root_tag' in export:
            self.export_config.root_tag = str(export['root_tag'])
        if 'record_tag' in export:
            self.export_config.record_tag = str(export['record_tag'])
        if 'csv_escape_quotes' in export:
            self.export_config.csv_escape_quotes = _parse_bool(
                export['csv_escape_quotes'], self.export_config.csv_escape_quotes
            )

        logging_section = settings.get('logging') or {}
        if 'level' in logging_section:
            self.log_level = str(logging_section['level']).upper()

        self.logger.info(f"Applied settings from {path}")

    def create_overlay_store(self) -> OverlayStore:
        """
        Build a file-backed overlay store from the storage configuration.

        Returns:
            OverlayStore persisted under storage directory / storage key
        """
        backend = FileStorageBackend(self.storage_config.directory)
        return OverlayStore(
            backend=backend,
            storage_key=self.storage_config.storage_key,
            version=self.storage_config.version
        )

    def get_log_level(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)

    def validate_configuration(self) -> bool:
        """
        Validate all configuration settings.

        Returns:
            True if all configurations are valid

        Raises:
            ConfigurationError: If any configuration is invalid
        """
        errors = []

        if not self.storage_config.storage_key:
            errors.append("Storage key is empty")
        elif os.sep in self.storage_config.storage_key:
            errors.append(f"Storage key must not contain '{os.sep}'")

        if self.storage_config.directory.exists() and not self.storage_config.directory.is_dir():
            errors.append(f"Storage directory is not a directory: {self.storage_config.directory}")

        if self.fetch_config.timeout_seconds <= 0:
            errors.append("Fetch timeout must be greater than 0")

        if not self.export_config.root_tag:
            errors.append("Export root tag is empty")

        if self.log_level not in _LOG_LEVELS:
            errors.append(f"Unknown log level: {self.log_level}")

        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

        self.logger.info("Configuration validation passed")
        return True

    def get_configuration_summary(self) -> Dict[str, Any]:
        """
        Get a summary of all configuration settings.

        Returns:
            Dictionary containing configuration summary
        """
        return {
            'storage': {
                'directory': str(self.storage_config.directory),
                'storage_key': self.storage_config.storage_key,
                'version': self.storage_config.version
            },
            'fetch': {
                'timeout_seconds': self.fetch_config.timeout_seconds
            },
            'export': {
                'root_tag': self.export_config.root_tag,
                'record_tag': self.export_config.record_tag,
                'csv_escape_quotes': self.export_config.csv_escape_quotes
            },
            'records': {
                'max_slots': MAX_SLOTS
            },
            'logging': {
                'level': self.log_level
            },
            'settings_file': str(self.settings_path) if self.settings_path else None
        }

    def reload_configuration(self) -> None:
        """Reload configuration from environment variables and the settings file."""
        self.storage_config = StorageConfig.from_environment()
        self.fetch_config = FetchConfig.from_environment()
        self.export_config = ExportConfig.from_environment()
        self.log_level = os.environ.get('XML_CATALOG_LOG_LEVEL', 'INFO').upper()
        if self.settings_path is not None:
            self._apply_settings_file(self.settings_path)

        self.logger.info("Configuration reloaded")


# Global configuration manager instance
_global_config_manager: Optional[ConfigManager] = None


def get_config_manager(settings_path: Optional[Union[str, Path]] = None) -> ConfigManager:
    """
    Get the global configuration manager instance.

    Args:
        settings_path: Optional settings file. Only used on first call.

    Returns:
        Global ConfigManager instance
    """
    global _global_config_manager

    if _global_config_manager is None:
        _global_config_manager = ConfigManager(settings_path)

    return _global_config_manager


def reset_config_manager() -> None:
    """Reset the global configuration manager instance."""
    global _global_config_manager
    _global_config_manager = None
