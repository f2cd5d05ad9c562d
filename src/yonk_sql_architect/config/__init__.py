"""Configuration management for SQL Architect."""
from .settings import Settings, settings
from .app import (
    ArchitectConfig,
    StorageConfig,
    LLMConfig,
    TaggingConfig,
    LoggingConfig,
    load_config,
)

__all__ = [
    "Settings",
    "settings",
    "ArchitectConfig",
    "StorageConfig",
    "LLMConfig",
    "TaggingConfig",
    "LoggingConfig",
    "load_config",
]
