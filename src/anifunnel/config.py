"""Configuration management for anifunnel."""

import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class APIConfig(BaseModel):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0", description="Address to bind the server to")
    port: int = Field(default=8000, description="Port to bind the server to")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in the TCP range."""
        if not 0 < v < 65536:
            raise ValueError("Port must be between 1 and 65535")
        return v


class ScrobbleConfig(BaseModel):
    """Scrobble handling configuration."""

    multi_season: bool = Field(
        default=False,
        description="Match against all Plex library seasons, not only the first",
    )
    plex_user: Optional[str] = Field(
        default=None, description="Only process updates from this Plex username"
    )

    @field_validator("plex_user")
    @classmethod
    def validate_plex_user(cls, v: Optional[str]) -> Optional[str]:
        """Treat a blank username as no restriction."""
        if v is not None and not v.strip():
            return None
        return v


class AniListConfig(BaseModel):
    """AniList API configuration."""

    api_url: str = Field(default="https://graphql.anilist.co/", description="GraphQL endpoint")
    timeout_seconds: float = Field(default=10.0, description="Request timeout")


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = Field(default="anifunnel.sqlite", description="SQLite database path")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    format: str = Field(default="text", description="Log format (json or text)")
    level: str = Field(default="info", description="Log level")
    output: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        if v.lower() not in ("debug", "info", "warning", "error", "critical"):
            raise ValueError("Invalid log level")
        return v.lower()


class Config(BaseModel):
    """Main configuration model."""

    api: APIConfig = Field(default_factory=APIConfig, description="API configuration")
    scrobble: ScrobbleConfig = Field(
        default_factory=ScrobbleConfig, description="Scrobble configuration"
    )
    anilist: AniListConfig = Field(
        default_factory=AniListConfig, description="AniList configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path) as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            raw_config = {}

        raw_config = cls._substitute_env_vars(raw_config)

        return cls(**raw_config)

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """Recursively replace ${VAR_NAME} with os.environ['VAR_NAME'].

        Args:
            obj: Configuration object (dict, list, str, etc.)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, dict):
            return {key: Config._substitute_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [Config._substitute_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            pattern = r"\$\{([^}]+)\}"

            def replace_var(match):
                var_name = match.group(1)
                value = os.environ.get(var_name)
                if value is None:
                    raise ValueError(
                        f"Environment variable '{var_name}' not found "
                        f"(referenced in configuration)"
                    )
                return value

            return re.sub(pattern, replace_var, obj)
        else:
            return obj

    @classmethod
    def from_defaults(cls) -> "Config":
        """Create configuration with default values."""
        return cls()

    def with_overrides(self, **overrides: Any) -> "Config":
        """Return a copy with command-line values applied.

        Keys are ``section__field`` pairs, e.g. ``api__port``. ``None`` values
        are ignored so unset options keep the file or default value.

        Args:
            **overrides: Values keyed by section and field

        Returns:
            New Config instance
        """
        data = self.model_dump()
        for key, value in overrides.items():
            if value is None:
                continue
            section, field = key.split("__", 1)
            data[section][field] = value
        return Config(**data)


def load_config(path: Optional[str | Path] = None) -> Config:
    """Load configuration from file or use defaults.

    Args:
        path: Optional path to configuration file. If None, uses defaults.

    Returns:
        Config instance
    """
    if path is None:
        return Config.from_defaults()

    return Config.from_yaml(path)
