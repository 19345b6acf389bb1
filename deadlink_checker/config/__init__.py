"""Configuration models and loaders."""

from .pydantic_config import (
    CheckerConfig,
    ConfigurationManager,
    create_sample_config,
    format_validation_error,
)

__all__ = [
    "CheckerConfig",
    "ConfigurationManager",
    "create_sample_config",
    "format_validation_error",
]
