from __future__ import annotations

import json
import os
import pathlib
from copy import deepcopy
from typing import Any, Dict, List, Optional, Set, Union

import aiofiles
import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from extpack.core.base import ExtpackManager
from extpack.utils.exceptions import ConfigurationError, ManagerInitializationError


class ConfigSchema(BaseModel):
    """Schema for validating configuration data.

    This model defines the expected structure and default values for the
    extpack configuration.
    """
    app: Dict[str, Any] = Field(
        default_factory=lambda: {
            'name': 'extpack',
            'environment': 'production',
        },
        description='Application settings',
    )
    logging: Dict[str, Any] = Field(
        default_factory=lambda: {
            'level': 'INFO',
            'format': 'text',
            'file': {
                'enabled': False,
                'path': 'logs/extpack.log',
                'rotation': '10 MB',
                'retention': '30 days',
            },
            'console': {
                'enabled': True,
                'level': 'INFO',
            },
        },
        description='Logging settings',
    )
    packaging: Dict[str, Any] = Field(
        default_factory=lambda: {
            'manifest_file': 'package.json',
            'readme_file': 'README.md',
            'changelog_file': 'CHANGELOG.md',
            'output_dir': 'dist',
            'archive_suffix': '.foxe',
            'prepublish_script': 'lichtblick:prepublish',
            'package_manager': 'npm',
        },
        description='Archive layout and prepublish hook settings',
    )
    install: Dict[str, Any] = Field(
        default_factory=lambda: {
            'app_name': 'lichtblick-suite',
            'extensions_dir': None,
        },
        description='Host application extension directory settings',
    )
    publish: Dict[str, Any] = Field(
        default_factory=lambda: {
            'timeout': 10.0,
        },
        description='Registry entry settings',
    )

    @model_validator(mode='after')
    def validate_archive_suffix(self) -> 'ConfigSchema':
        """Validate that the archive suffix is a dotted file extension."""
        suffix = self.packaging.get('archive_suffix')
        if not isinstance(suffix, str) or not suffix.startswith('.') or '/' in suffix:
            raise ValueError('packaging.archive_suffix must be a file extension such as ".foxe".')
        return self

    @model_validator(mode='after')
    def validate_app_name(self) -> 'ConfigSchema':
        """Validate that the host application name is a single path component."""
        app_name = self.install.get('app_name')
        if not isinstance(app_name, str) or not app_name or os.sep in app_name or '/' in app_name:
            raise ValueError('install.app_name must be a non-empty directory name.')
        return self


class ConfigManager(ExtpackManager):
    """Configuration manager for extpack.

    This manager handles loading, validating, and providing access to
    configuration settings from files and environment variables.

    Attributes:
        _config_path: Path to the configuration file
        _env_prefix: Prefix for environment variables
        _config: The loaded configuration
        _loaded_from_file: Whether configuration was loaded from a file
        _env_vars_applied: Set of applied environment variables
    """

    def __init__(
            self,
            config_path: Optional[Union[str, pathlib.Path]] = None,
            env_prefix: str = 'EXTPACK_'
    ) -> None:
        """Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
            env_prefix: Prefix for environment variables
        """
        super().__init__(name='config_manager')
        self._config_path = pathlib.Path(config_path) if config_path else pathlib.Path('extpack.yaml')
        self._env_prefix = env_prefix
        self._config: Dict[str, Any] = {}
        self._loaded_from_file = False
        self._env_vars_applied: Set[str] = set()

    async def initialize(self) -> None:
        """Initialize the configuration manager asynchronously.

        Loads configuration from default schema, file, and environment variables.

        Raises:
            ManagerInitializationError: If initialization fails
        """
        try:
            self._config = ConfigSchema().model_dump()
            await self._load_from_file()
            self._apply_env_vars()
            self._validate_config()

            self._initialized = True
            self._healthy = True
        except Exception as e:
            raise ManagerInitializationError(
                f'Failed to initialize ConfigManager: {str(e)}',
                manager_name=self.name
            ) from e

    async def _load_from_file(self) -> None:
        """Load configuration from a file asynchronously.

        Raises:
            ConfigurationError: If the file cannot be parsed
        """
        if not self._config_path.exists():
            return

        suffix = self._config_path.suffix.lower()
        if suffix not in ('.yaml', '.yml', '.json'):
            raise ConfigurationError(
                f'Unsupported config file format: {self._config_path.suffix}',
                config_key='config_path'
            )

        try:
            async with aiofiles.open(self._config_path, 'r', encoding='utf-8') as f:
                content = await f.read()

            if suffix == '.json':
                file_config = json.loads(content) if content.strip() else None
            else:
                file_config = yaml.safe_load(content)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f'Error parsing config file {self._config_path}: {str(e)}',
                config_key='config_path'
            ) from e

        if file_config:
            if not isinstance(file_config, dict):
                raise ConfigurationError(
                    f'Config file {self._config_path} must contain a mapping',
                    config_key='config_path'
                )
            self._merge_config(file_config)
            self._loaded_from_file = True

    def _apply_env_vars(self) -> None:
        """Override configuration values with prefixed environment variables.

        The first underscore after the prefix separates the section from the
        key, so ``EXTPACK_INSTALL_APP_NAME`` sets ``install.app_name``.
        """
        for env_name, env_value in os.environ.items():
            if not env_name.startswith(self._env_prefix):
                continue

            parts = env_name[len(self._env_prefix):].lower().split('_', 1)
            if len(parts) != 2 or parts[0] not in self._config:
                continue

            # String and unset settings keep the raw text, so "2024" stays a path
            section = self._config[parts[0]]
            if isinstance(section, dict) and parts[1] in section and (
                    section[parts[1]] is None or isinstance(section[parts[1]], str)):
                value: Any = env_value
            else:
                value = self._parse_env_value(env_value)

            self._set_nested_value(self._config, parts, value)
            self._env_vars_applied.add(env_name)

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """Parse environment variable values into appropriate types.

        Args:
            value: The string value from the environment

        Returns:
            The parsed value (bool, int, float, or string)
        """
        if value.lower() in ('true', 'yes', 'on'):
            return True
        if value.lower() in ('false', 'no', 'off'):
            return False

        try:
            if value.isdigit() or (value.startswith('-') and value[1:].isdigit()):
                return int(value)
            return float(value)
        except ValueError:
            return value

    def _set_nested_value(self, config: Dict[str, Any], path: List[str], value: Any) -> None:
        """Set a nested value in the configuration dictionary.

        Args:
            config: The configuration dictionary
            path: List of keys forming the path to the value
            value: The value to set
        """
        if not path:
            return

        if len(path) == 1:
            config[path[0]] = value
            return

        key = path[0]
        if not isinstance(config.get(key), dict):
            config[key] = {}

        self._set_nested_value(config[key], path[1:], value)

    def _validate_config(self) -> None:
        """Validate the configuration against the schema.

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        try:
            self._config = ConfigSchema(**self._config).model_dump()
        except ValidationError as e:
            errors = e.errors()
            error_details = ', '.join((
                f"{'.'.join((str(loc) for loc in error['loc']))}: {error['msg']}"
                for error in errors
            ))
            raise ConfigurationError(
                f'Invalid configuration: {error_details}',
                details={'validation_errors': errors}
            ) from e

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by key.

        Args:
            key: The configuration key (dot-separated for nested values)
            default: Default value if the key doesn't exist

        Returns:
            The configuration value or default

        Raises:
            ConfigurationError: If the manager isn't initialized
        """
        if not self._initialized:
            raise ConfigurationError(
                'Cannot access configuration before initialization',
                config_key=key
            )

        result: Any = self._config
        try:
            for part in key.split('.'):
                result = result[part]
            return result
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """Override a configuration value for the current invocation.

        Args:
            key: The configuration key (dot-separated for nested values)
            value: The value to set

        Raises:
            ConfigurationError: If the manager isn't initialized or the value is invalid
        """
        if not self._initialized:
            raise ConfigurationError(
                'Cannot modify configuration before initialization',
                config_key=key
            )

        previous = self._config
        self._config = deepcopy(previous)
        self._set_nested_value(self._config, key.split('.'), value)
        try:
            self._validate_config()
        except ConfigurationError:
            self._config = previous
            raise

    def _merge_config(
            self,
            from_config: Dict[str, Any],
            to_config: Optional[Dict[str, Any]] = None
    ) -> None:
        """Merge a configuration dictionary into another.

        Args:
            from_config: The source configuration
            to_config: The target configuration (defaults to self._config)
        """
        if to_config is None:
            to_config = self._config

        for key, value in from_config.items():
            if isinstance(to_config.get(key), dict) and isinstance(value, dict):
                self._merge_config(value, to_config[key])
            elif value not in [None, '', {}]:
                to_config[key] = value

    async def shutdown(self) -> None:
        """Shut down the configuration manager."""
        self._initialized = False
        self._healthy = False

    def status(self) -> Dict[str, Any]:
        """Get the status of the configuration manager.

        Returns:
            Dictionary with status information
        """
        status = super().status()
        status.update({
            'config_file': str(self._config_path) if self._loaded_from_file else None,
            'loaded_from_file': self._loaded_from_file,
            'env_vars_applied': len(self._env_vars_applied),
        })
        return status
