"""
Pydantic-based configuration system for the Dead Link Checker.

Options can come from a TOML/JSON file, ``DEADLINK_*`` environment
variables and command-line overrides, in increasing order of precedence.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import toml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..core.proxy_probe import DEFAULT_SOCKS5_HOST, default_socks5_port
from ..utils.browser_simulator import DESKTOP_PROFILE
from ..utils.error_handler import ConfigurationError

DEFAULT_USER_AGENT = DESKTOP_PROFILE.user_agent

ENV_PREFIX = "DEADLINK_"


class CheckerConfig(BaseModel):
    """Settings recognized by the checking engine."""

    header_timeout: int = Field(
        default=30,
        ge=1,
        le=600,
        description="Timeout in seconds for header-only requests",
    )
    body_timeout: int = Field(
        default=60,
        ge=1,
        le=1200,
        description="Timeout in seconds for full-body requests",
    )
    user_agent: Optional[str] = Field(
        default=None,
        description="User-Agent override; the built-in browser string if unset",
    )
    queued_testing: bool = Field(
        default=True,
        description="Spread requests into waves so hosts are not hammered",
    )
    verbose: bool = Field(
        default=False,
        description="Log per-request diagnostic details",
    )
    wave_delay: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Politeness delay in seconds between waves",
    )
    max_redirects: int = Field(
        default=10,
        ge=0,
        le=50,
        description="Maximum number of redirects followed per request",
    )
    max_concurrent_requests: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Maximum number of requests in flight within a batch",
    )
    socks5_host: str = Field(
        default=DEFAULT_SOCKS5_HOST,
        min_length=1,
        description="SOCKS5 proxy host used for onion addresses",
    )
    socks5_port: Optional[int] = Field(
        default=None,
        ge=1,
        le=65535,
        description="SOCKS5 proxy port; chosen by operating system if unset",
    )

    @field_validator("user_agent", mode="before")
    @classmethod
    def blank_user_agent_is_default(cls, v):
        """Treat an empty override as no override."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("body_timeout")
    @classmethod
    def validate_body_timeout(cls, v):
        """Warn when a full-body timeout is too short to be useful."""
        if v < 10:
            import warnings

            warnings.warn(
                f"Short full-body timeout ({v}s) may report slow but healthy "
                f"sites as dead. Consider using 30-60 seconds.",
                UserWarning,
            )
        return v

    @property
    def effective_user_agent(self) -> str:
        return self.user_agent or DEFAULT_USER_AGENT

    @property
    def effective_socks5_port(self) -> int:
        return self.socks5_port or default_socks5_port()

    @property
    def proxy_url(self) -> str:
        return f"socks5://{self.socks5_host}:{self.effective_socks5_port}"


class ConfigurationManager:
    """Manages loading and validation of configuration from multiple sources."""

    DEFAULT_FILE_NAMES = ("deadlink_config.toml", "deadlink_config.json")

    def __init__(self, config_path: Optional[Path] = None, use_env: bool = True):
        """
        Initialize configuration manager.

        Args:
            config_path: Optional path to configuration file (TOML or JSON)
            use_env: Whether DEADLINK_* environment variables are applied
        """
        self._config: Optional[CheckerConfig] = None
        self._use_env = use_env
        self._load_configuration(config_path)

    def _get_default_config_paths(self) -> list:
        """Get list of default configuration file paths to try."""
        if getattr(sys, "frozen", False):
            base_dir = Path(sys.executable).parent
        else:
            base_dir = Path.cwd()

        return [base_dir / name for name in self.DEFAULT_FILE_NAMES]

    def _load_configuration(self, config_path: Optional[Path] = None) -> None:
        """Load configuration from file or use defaults."""
        config_data: Dict[str, Any] = {}

        if config_path:
            config_data = self._load_config_file(Path(config_path))
        else:
            for path in self._get_default_config_paths():
                if path.exists():
                    config_data = self._load_config_file(path)
                    break

        if self._use_env:
            self._load_env_overrides(config_data)

        self._config = self._build(config_data)

    def _load_config_file(self, config_path: Path) -> Dict[str, Any]:
        """Load configuration from TOML or JSON file."""
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            if config_path.suffix.lower() == ".toml":
                data = toml.load(config_path)
            elif config_path.suffix.lower() == ".json":
                with open(config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            else:
                raise ConfigurationError(
                    f"Unsupported configuration file format: {config_path.suffix}"
                )
        except ConfigurationError:
            raise
        except (OSError, ValueError, toml.TomlDecodeError) as e:
            raise ConfigurationError(
                f"Failed to load configuration from {config_path}: {e}"
            ) from e

        # Settings may sit at the top level or under a [checker] table
        return dict(data.get("checker", data))

    def _load_env_overrides(self, config_data: Dict[str, Any]) -> None:
        """Apply DEADLINK_* environment variables."""
        for name in ("socks5_host", "socks5_port", "user_agent"):
            value = os.getenv(ENV_PREFIX + name.upper())
            if value:
                config_data[name] = value

    @staticmethod
    def _build(config_data: Dict[str, Any]) -> CheckerConfig:
        try:
            return CheckerConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(format_validation_error(e)) from e

    def update_from_cli_args(self, args: Dict[str, Any]) -> None:
        """Update configuration from command-line arguments; None means unset."""
        if not self._config:
            raise RuntimeError("Configuration not loaded")

        config_dict = self._config.model_dump()
        for key, value in args.items():
            if key in CheckerConfig.model_fields and value is not None:
                config_dict[key] = value

        self._config = self._build(config_dict)

    @property
    def config(self) -> CheckerConfig:
        """Get the current configuration."""
        if not self._config:
            raise RuntimeError("Configuration not loaded")
        return self._config


def create_sample_config(output_path: Path, format: str = "toml") -> None:
    """Create a sample configuration file."""
    sample_config = {
        "checker": {
            "header_timeout": 30,
            "body_timeout": 60,
            "queued_testing": True,
            "verbose": False,
            "wave_delay": 1.0,
            "max_redirects": 10,
            "max_concurrent_requests": 100,
            "socks5_host": DEFAULT_SOCKS5_HOST,
            "socks5_port": default_socks5_port(),
        }
    }

    if format.lower() == "toml":
        with open(output_path, "w", encoding="utf-8") as f:
            toml.dump(sample_config, f)
    elif format.lower() == "json":
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(sample_config, f, indent=2)
    else:
        raise ConfigurationError(f"Unsupported format: {format}")


def format_validation_error(error: ValidationError) -> str:
    """
    Convert a Pydantic ValidationError into a user-friendly message.

    Args:
        error: Pydantic ValidationError instance

    Returns:
        One line per invalid option
    """
    lines = ["Configuration validation failed:"]
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "configuration"
        error_type = detail["type"]
        input_value = detail.get("input", "N/A")

        if error_type in (
            "greater_than_equal",
            "less_than_equal",
            "greater_than",
            "less_than",
        ):
            limit = detail.get("ctx", {}).get("ge", detail.get("ctx", {}).get("le"))
            message = f"value out of range (limit {limit})"
        elif error_type == "missing":
            message = "required option is missing"
        else:
            message = detail.get("msg", "invalid value")

        lines.append(f"  - {location}: {message} (got: {input_value!r})")

    return "\n".join(lines)


__all__ = [
    "DEFAULT_USER_AGENT",
    "CheckerConfig",
    "ConfigurationManager",
    "create_sample_config",
    "format_validation_error",
]
