"""Configuration management for the confession wall."""

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, SecretStr

DEFAULT_ALLOWED_TYPES = ["image/jpeg", "image/png", "image/gif", "image/webp"]


class ServerConfig(BaseModel):
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=1, le=65535)
    public_base_url: str = Field(
        default="http://localhost:3000", description="Prefix for public upload URLs"
    )
    trust_proxy: bool = Field(
        default=False, description="Take the client address from X-Forwarded-For"
    )
    cors_origins: list[str] = ["*"]
    max_message_length: Optional[int] = Field(default=None, ge=1)


class StorageConfig(BaseModel):
    """Submission store settings."""

    backend: Literal["sql", "json"] = "sql"
    database_url: str = Field(
        default="sqlite+aiosqlite:///~/.confess-wall/confessions.db",
        description="SQLAlchemy async URL for the row store",
    )
    data_file: str = Field(
        default="~/.confess-wall/confessions.json",
        description="Path to the JSON file for the file-backed store",
    )


class RateLimitConfig(BaseModel):
    """Abuse gate settings."""

    window_seconds: float = Field(default=10.0, gt=0)
    max_requests: int = Field(default=5, ge=1)
    audit_log_path: str = "ddos-blocked.log"


class UploadConfig(BaseModel):
    """Photo upload settings."""

    directory: str = Field(default="public/uploads", description="Where uploaded photos are written")
    public_path: str = "/uploads"
    max_bytes: int = Field(default=2 * 1024 * 1024, ge=1)
    allowed_types: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_TYPES))
    serve: bool = Field(default=True, description="Mount the uploads directory as static files")


class TurnstileConfig(BaseModel):
    """Human verification settings."""

    secret_key: SecretStr = Field(..., description="Shared secret for the verification service")
    verify_url: str = "https://challenges.cloudflare.com/turnstile/v0/siteverify"
    timeout_seconds: float = Field(default=5.0, gt=0, le=60)


class Config(BaseModel):
    """Root configuration model."""

    turnstile: TurnstileConfig
    server: ServerConfig = ServerConfig()
    storage: StorageConfig = StorageConfig()
    rate_limit: RateLimitConfig = RateLimitConfig()
    uploads: UploadConfig = UploadConfig()


def load_config(config_path: str | Path = "config.yaml") -> Config:
    """Load and validate configuration from YAML file.

    Supports ${VAR_NAME} syntax for environment variable expansion.

    Args:
        config_path: Path to the configuration file.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config is invalid.
        ValueError: If referenced environment variable is not set.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Copy config.example.yaml to config.yaml and fill in your values."
        )

    with path.open() as f:
        raw_config = yaml.safe_load(f) or {}

    # Expand environment variables in the format ${VAR_NAME}
    def expand_env_vars(obj):
        if isinstance(obj, dict):
            return {k: expand_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [expand_env_vars(item) for item in obj]
        elif isinstance(obj, str) and obj.startswith("${") and obj.endswith("}"):
            env_var = obj[2:-1]
            value = os.getenv(env_var)
            if value is None:
                raise ValueError(f"Environment variable '{env_var}' is not set")
            return value
        return obj

    raw_config = expand_env_vars(raw_config)

    return Config(**raw_config)
