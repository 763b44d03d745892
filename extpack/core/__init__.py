"""Core package containing the configuration and logging managers."""

from extpack.core.base import ExtpackManager
from extpack.core.config_manager import ConfigManager, ConfigSchema
from extpack.core.logging_manager import LoggingManager
