"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Bucket and binding definitions are JSON blobs; they are parsed by the
bucket registry and binding factory, not here.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like auth_secret_key), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Upload Gateway API"
    api_version: str = "v1"
    auth_secret_key: str = Field(
        default="",
        description="Comma-separated bearer tokens. The service refuses all requests while this is empty."
    )

    # Buckets
    bucket_configs: str = Field(
        default="",
        description=(
            "JSON list of bucket records (id, name, provider, bucketName, accessKeyId, "
            "secretAccessKey, region, endpoint, customDomain, bindingName, allowedPaths, idWhitelist)."
        )
    )

    # R2 Bindings
    r2_bindings: str = Field(
        default="",
        description=(
            "JSON object mapping binding name to R2 API credentials "
            "(accountId or endpointUrl, accessKeyId, secretAccessKey, bucketName)."
        )
    )
    r2_mock_mode: bool = Field(
        default=False,
        description="Use in-memory bindings instead of real R2. Enables local dev without object storage."
    )

    # Application Behavior
    max_upload_size_mb: int = Field(
        default=100,
        description="Maximum upload size in MB. Larger files are rejected with 413."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins."
    )

    # Server
    port: int = Field(
        default=9000,
        description="Port for the development server."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def auth_tokens_list(self) -> list[str]:
        """Parse comma-separated bearer tokens into a list."""
        return [token.strip() for token in self.auth_secret_key.split(",") if token.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set.

        Returns list of missing required fields. R2 binding credentials
        are only required outside mock mode, and only if a bucket needs them,
        which the readiness check verifies separately.
        """
        missing = []

        if not self.auth_tokens_list:
            missing.append("AUTH_SECRET_KEY")

        if not self.bucket_configs.strip():
            missing.append("BUCKET_CONFIGS")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
