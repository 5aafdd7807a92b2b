"""Configuration management for Flow Mapper."""

from .manager import ConfigManager, LoggingConfig, MappingConfig

__all__ = ["ConfigManager", "MappingConfig", "LoggingConfig"]
