"""Application configuration using pydantic-settings."""

from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Service configuration loaded from environment variables."""

    # Public URLs
    app_base_url: str = "http://localhost:8000"
    public_scheme: str = "https"
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    # External auth provider (HS256 access tokens)
    auth_jwt_secret: str = "change-me-to-a-random-32-byte-secret"
    auth_jwt_audience: str = "authenticated"

    # Object storage for uploaded logos
    storage_url: str = "http://localhost:54321"
    storage_service_key: str = ""
    logo_bucket: str = "qr-logos"
    logo_max_bytes: int = 2 * 1024 * 1024

    # Short codes
    short_code_length: int = 8
    short_code_max_attempts: int = 20

    # Scan analytics
    ip_hash_salt: str = ""

    # Reject configurations the validator scores as critical
    reject_critical_configs: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///qrlanding.db"

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Logging
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [x.strip() for x in value.split(",") if x.strip()]
        return value


settings = Settings()
