"""Application configuration management.

This module provides configuration loading from environment variables and YAML files.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogFormat(str, Enum):
    """Log output format types."""

    JSON = "json"
    CONSOLE = "console"


class AppSettings(BaseModel):
    """Application settings."""

    env: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    name: str = Field(default="agentcrew", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v


class AnthropicConfig(BaseModel):
    """Anthropic API configuration."""

    api_key: str = Field(default="", description="Anthropic API key")
    base_url: str | None = Field(default=None, description="Optional API base URL")
    timeout: float = Field(default=120.0, description="Request timeout in seconds")


class ModelTierConfig(BaseModel):
    """Model id per cost/latency tier."""

    fast: str = Field(default="claude-haiku-4-5-20251001")
    standard: str = Field(default="claude-sonnet-4-20250514")
    advanced: str = Field(default="claude-opus-4-20250514")

    def resolve(self, tier: str) -> str:
        """Return the model id configured for a tier name."""
        model = getattr(self, str(tier), None)
        if not model:
            raise ValueError(f"Unknown model tier: {tier}")
        return model


class ExaConfig(BaseModel):
    """Exa search API configuration."""

    api_key: str = Field(default="", description="Exa API key")
    base_url: str = Field(default="https://api.exa.ai", description="Exa API base URL")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: LogFormat = Field(default=LogFormat.JSON, description="Log format")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper


class MemoryConfig(BaseModel):
    """Thread memory retention settings."""

    ttl_seconds: int = Field(default=2 * 60 * 60, description="Idle time before expiry")
    max_messages: int = Field(default=50, description="Messages retained per thread")
    sweep_interval_seconds: int = Field(default=10 * 60, description="Sweep period")
    shards: int = Field(default=16, description="Number of lock shards")

    @field_validator("ttl_seconds", "max_messages", "sweep_interval_seconds", "shards")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Memory settings must be positive")
        return v


class DispatchConfig(BaseModel):
    """Dispatch loop settings."""

    default_agent: str = Field(default="maven", description="Fallback agent")
    max_handoffs: int = Field(default=1, description="Redirects allowed per turn")
    fallback_classifier: bool = Field(
        default=True, description="Use a model call when no routing rule matches"
    )

    @field_validator("max_handoffs")
    @classmethod
    def validate_max_handoffs(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_handoffs cannot be negative")
        return v


class QualityConfig(BaseModel):
    """Quality scoring settings."""

    pass_threshold: int = Field(default=70, description="Minimum passing score")

    @field_validator("pass_threshold")
    @classmethod
    def validate_threshold(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("pass_threshold must be between 0 and 100")
        return v


class LangfuseConfig(BaseModel):
    """Langfuse observability configuration."""

    enabled: bool = Field(default=False, description="Enable Langfuse")
    public_key: str = Field(default="", description="Langfuse public key")
    secret_key: str = Field(default="", description="Langfuse secret key")
    host: str = Field(
        default="https://cloud.langfuse.com", description="Langfuse host URL"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    app: AppSettings = Field(default_factory=AppSettings)
    anthropic: AnthropicConfig = Field(default_factory=AnthropicConfig)
    models: ModelTierConfig = Field(default_factory=ModelTierConfig)
    exa: ExaConfig = Field(default_factory=ExaConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    langfuse: LangfuseConfig = Field(default_factory=LangfuseConfig)

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "AppConfig":
        """Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            AppConfig instance populated from YAML

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ValueError: If YAML content is invalid
        """
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError("YAML content must be a dictionary")

        return cls.model_validate(data)

    @classmethod
    def load(
        cls,
        yaml_path: str | Path | None = None,
        env_file: str | Path | None = None,
    ) -> "AppConfig":
        """Load configuration with YAML as base and environment overrides.

        Environment variables take precedence over YAML settings.

        Args:
            yaml_path: Optional path to YAML configuration file
            env_file: Optional path to .env file

        Returns:
            AppConfig instance with merged configuration
        """
        config = cls.from_yaml(yaml_path) if yaml_path else cls()

        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        return cls._apply_env_overrides(config)

    @classmethod
    def _apply_env_overrides(cls, config: "AppConfig") -> "AppConfig":
        """Apply environment variable overrides to existing config."""
        data = config.model_dump()

        for env_var, (section, key, cast) in _ENV_OVERRIDES.items():
            raw = os.getenv(env_var)
            if raw:
                data[section][key] = cast(raw)

        # Langfuse keys alone switch tracing on unless explicitly disabled
        if (
            os.getenv("LANGFUSE_PUBLIC_KEY")
            and os.getenv("LANGFUSE_SECRET_KEY")
            and not os.getenv("LANGFUSE_ENABLED")
        ):
            data["langfuse"]["enabled"] = True

        return cls.model_validate(data)


def _as_bool(value: str) -> bool:
    return value.lower() == "true"


_ENV_OVERRIDES: dict[str, tuple[str, str, Any]] = {
    "APP_ENV": ("app", "env", str),
    "APP_DEBUG": ("app", "debug", _as_bool),
    "APP_HOST": ("app", "host", str),
    "APP_PORT": ("app", "port", int),
    "ANTHROPIC_API_KEY": ("anthropic", "api_key", str),
    "ANTHROPIC_BASE_URL": ("anthropic", "base_url", str),
    "MODEL_FAST": ("models", "fast", str),
    "MODEL_STANDARD": ("models", "standard", str),
    "MODEL_ADVANCED": ("models", "advanced", str),
    "EXA_API_KEY": ("exa", "api_key", str),
    "LOG_LEVEL": ("logging", "level", str),
    "LOG_FORMAT": ("logging", "format", str),
    "MEMORY_TTL_SECONDS": ("memory", "ttl_seconds", int),
    "MEMORY_MAX_MESSAGES": ("memory", "max_messages", int),
    "MEMORY_SWEEP_INTERVAL": ("memory", "sweep_interval_seconds", int),
    "DISPATCH_DEFAULT_AGENT": ("dispatch", "default_agent", str),
    "DISPATCH_MAX_HANDOFFS": ("dispatch", "max_handoffs", int),
    "DISPATCH_FALLBACK_CLASSIFIER": ("dispatch", "fallback_classifier", _as_bool),
    "QUALITY_PASS_THRESHOLD": ("quality", "pass_threshold", int),
    "LANGFUSE_ENABLED": ("langfuse", "enabled", _as_bool),
    "LANGFUSE_PUBLIC_KEY": ("langfuse", "public_key", str),
    "LANGFUSE_SECRET_KEY": ("langfuse", "secret_key", str),
    "LANGFUSE_HOST": ("langfuse", "host", str),
}


# Global configuration instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get the global configuration instance.

    Returns:
        The global AppConfig instance

    Raises:
        RuntimeError: If configuration has not been initialized
    """
    global _config
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call init_config() first.")
    return _config


def init_config(
    yaml_path: str | Path | None = None,
    env_file: str | Path | None = None,
) -> AppConfig:
    """Initialize the global configuration.

    Args:
        yaml_path: Optional path to YAML configuration file
        env_file: Optional path to .env file

    Returns:
        The initialized AppConfig instance
    """
    global _config
    _config = AppConfig.load(yaml_path=yaml_path, env_file=env_file)
    return _config


def reset_config() -> None:
    """Reset the global configuration (mainly for testing)."""
    global _config
    _config = None
