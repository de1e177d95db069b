"""Configuration management using pydantic-settings."""

from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ALLOWED_FIXED_SCHEMES = ("", "http", "https")


class RewriteRule(BaseModel):
    """Internal to external node name translation, shared read-only by all requests."""

    model_config = ConfigDict(frozen=True)

    internal_pattern: str
    external_replacement: str
    domain: str
    fixed_scheme: str | None = None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="REDIRECT_GATEWAY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    host: str = Field(default="0.0.0.0", description="Listen address")
    port: int = Field(default=8080, description="Listen port", ge=1, le=65535)

    resolver_endpoint: str = Field(description="Base URL of the redirect resolver")
    resolver_timeout: float = Field(default=10.0, description="Resolver request timeout in seconds", ge=1.0)

    internal_pattern: str = Field(description="Substring identifying internal node names")
    external_replacement: str = Field(description="Replacement for the internal pattern")
    domain: str = Field(description="Public domain appended to translated node names")
    fixed_scheme: str = Field(default="", description="Scheme forced onto rewritten redirects")

    resource_update_enabled: bool = Field(default=False, description="Publish device metadata to the resource store")
    resource_url: str = Field(default="", description="Base URL of the resource store")
    auth_header_check_enabled: bool = Field(default=False, description="Reject requests without Authorization")

    health_check_attempts: int = Field(default=10, description="Startup resolver probes", ge=1)
    health_check_delay: float = Field(default=1.0, description="Seconds between startup probes", ge=0.0)

    log_level: str = Field(default="INFO", description="Logging level")

    metrics_enabled: bool = Field(default=True, description="Expose /metrics")
    metrics_namespace: str = Field(default="xmidt", description="Prometheus namespace")
    metrics_subsystem: str = Field(default="redirect_gateway", description="Prometheus subsystem")

    trace_provider: str = Field(default="stdout", description="otlp, noop or stdout")
    trace_endpoint: str = Field(default="", description="OTLP collector endpoint")
    trace_skip_export: bool = Field(default=False, description="Build the stdout provider without exporting")
    service_name: str = Field(default="redirect-gateway", description="Service name reported in traces")

    @field_validator("fixed_scheme")
    @classmethod
    def _check_fixed_scheme(cls, value: str) -> str:
        if value not in ALLOWED_FIXED_SCHEMES:
            raise ValueError(f"Invalid Scheme [{value}]")
        return value

    @field_validator("resolver_endpoint", "resource_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @model_validator(mode="after")
    def _check_resource_url(self) -> "Settings":
        if self.resource_update_enabled and not self.resource_url:
            raise ValueError("resource_url is required when resource_update_enabled is set")
        return self

    def rewrite_rule(self) -> RewriteRule:
        """Build the immutable rewrite rule used by the forwarder."""
        return RewriteRule(
            internal_pattern=self.internal_pattern,
            external_replacement=self.external_replacement,
            domain=self.domain,
            fixed_scheme=self.fixed_scheme or None,
        )


@lru_cache
def get_settings() -> Settings:
    """Get the application settings instance."""
    return Settings()
