"""
Configuration management using Pydantic Settings.
Loads from environment variables and .env file.
"""

from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    """Application configuration loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CACHESCOUT_",
        case_sensitive=False,
        extra="ignore",
    )

    # Crawl limits
    max_pages: int = Field(default=10, description="Maximum pages to analyze per run")
    max_depth: int = Field(default=2, description="Maximum link depth to crawl")
    request_timeout_ms: int = Field(default=30000, description="Per-probe timeout in ms")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
        ),
        description="User-Agent sent by page fetches"
    )

    # Experiments & monitoring
    experiment_mode: bool = Field(default=True, description="Run cache experiments")
    monitor_interval_ms: int = Field(default=60000, description="Monitoring interval in ms")
    max_monitor_cycles: int = Field(
        default=0,
        description="Maximum monitoring cycles (0 = unbounded)"
    )

    # Signature database
    signatures_path: str = Field(
        default="",
        description="Override path to the signature YAML (empty = packaged copy)"
    )

    # Scope
    authorized_domains: str = Field(
        default="",
        description="Comma-separated list of authorized domains (empty = any)"
    )

    # AI review
    use_ai: bool = Field(default=False, description="Enable LLM narrative review")
    llm_provider: Literal["openai", "anthropic"] = Field(
        default="anthropic",
        description="Which LLM provider to use"
    )
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o", description="OpenAI model name")
    anthropic_api_key: str = Field(default="", description="Anthropic API key")
    anthropic_model: str = Field(
        default="claude-3-5-sonnet-20241022",
        description="Anthropic model name"
    )

    # Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level for the CLI")


# Global settings instance
settings = Settings()


class AgentConfig(BaseModel):
    """Configuration for a single agent run."""
    base_url: str
    max_pages: int = Field(default=10, ge=1)
    max_depth: int = Field(default=2, ge=0)
    timeout_ms: int = Field(default=30000, gt=0)
    experiment_mode: bool = True
    monitor_mode: bool = False
    monitor_interval_ms: int = Field(default=60000, ge=0)
    max_monitor_cycles: int = Field(default=0, ge=0)
    use_ai: bool = False
    llm_provider: Literal["openai", "anthropic"] = "anthropic"

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https"):
            raise ValueError("Only HTTP/HTTPS URLs are supported")
        if not parsed.hostname:
            raise ValueError(f"URL has no host: {value!r}")
        return value

    @property
    def reference_url(self) -> str:
        """Normalized base URL used as the fixed point for experiments and monitoring."""
        from ..inference.url_priority import normalize_url
        return normalize_url(self.base_url)

    @property
    def monitor_interval_seconds(self) -> float:
        return self.monitor_interval_ms / 1000

    @classmethod
    def from_settings(
        cls,
        base_url: str,
        source: Settings | None = None,
        **overrides: Any
    ) -> "AgentConfig":
        """
        Build a run configuration, filling unspecified values from settings.

        Args:
            base_url: URL to analyze
            source: Settings instance (defaults to the global one)
            **overrides: Explicit values; None entries are ignored

        Returns:
            AgentConfig
        """
        source = source or settings
        values: dict[str, Any] = {
            "base_url": base_url,
            "max_pages": source.max_pages,
            "max_depth": source.max_depth,
            "timeout_ms": source.request_timeout_ms,
            "experiment_mode": source.experiment_mode,
            "monitor_interval_ms": source.monitor_interval_ms,
            "max_monitor_cycles": source.max_monitor_cycles,
            "use_ai": source.use_ai,
            "llm_provider": source.llm_provider,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def load_agent_config(
    base_url: str,
    source: Settings | None = None,
    **overrides: Any
) -> AgentConfig:
    """
    Build and validate a run configuration.

    Raises:
        ConfigurationError: If any value is invalid
    """
    try:
        return AgentConfig.from_settings(base_url, source=source, **overrides)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(
            f"Invalid configuration: {problems}",
            {"base_url": base_url}
        ) from exc
