"""
Application settings
"""

from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Meeting Copilot configuration, read from the environment and ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Basics
    app_name: str = "Meeting Copilot"
    app_version: str = "1.0.0"
    debug: bool = Field(default=False, description="Debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8000, description="Bind port")
    app_url: str = Field(default="http://localhost:3000", description="Public URL used in emails")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./meeting_copilot.db",
        description="SQLAlchemy async database URL",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")
    database_pool_size: int = Field(default=10, description="Connection pool size")
    database_max_overflow: int = Field(default=20, description="Connection pool overflow")

    # Security
    secret_key: str = Field(
        default="change-this-secret-key-in-production",
        description="JWT signing key",
    )
    algorithm: str = Field(default="HS256", description="JWT algorithm")
    access_token_expire_minutes: int = Field(
        default=30 * 24 * 60, description="Access token lifetime (minutes)"
    )
    admin_email: Optional[str] = Field(default=None, description="Email of the admin account")
    password_min_length: int = Field(default=8, description="Minimum password length")
    reset_token_ttl_seconds: int = Field(default=3600, description="Password reset token lifetime")

    # Mail
    smtp_host: Optional[str] = Field(default=None, description="SMTP host")
    smtp_port: int = Field(default=587, description="SMTP port")
    smtp_username: Optional[str] = Field(default=None, description="SMTP username")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password")
    smtp_use_tls: bool = Field(default=True, description="Use STARTTLS")
    mail_from: str = Field(default="noreply@meeting-copilot.local", description="Sender address")

    # Blob storage
    upload_dir: str = Field(default="uploads", description="Local upload directory")
    max_upload_size: int = Field(default=200 * 1024 * 1024, description="Upload size cap (200MB)")
    allowed_upload_types: List[str] = Field(
        default=[
            "audio/mpeg",
            "audio/mp3",
            "audio/mp4",
            "audio/m4a",
            "audio/x-m4a",
            "audio/wav",
            "audio/x-wav",
            "audio/webm",
            "audio/ogg",
            "video/mp4",
            "video/webm",
            "video/quicktime",
        ],
        description="MIME types accepted by the direct upload endpoint",
    )
    aws_access_key_id: Optional[str] = Field(default=None, description="AWS access key id")
    aws_secret_access_key: Optional[str] = Field(default=None, description="AWS secret access key")
    aws_region: str = Field(default="us-east-1", description="AWS region")
    blob_bucket_name: Optional[str] = Field(default=None, description="S3 bucket for audio objects")
    upload_url_expires_in: int = Field(default=3600, description="Presigned upload lifetime (s)")

    # Live meeting store
    live_store_max_entries: int = Field(default=1000, description="Max live meetings kept in memory")
    live_store_ttl_seconds: int = Field(
        default=6 * 3600, description="Idle/completed live meetings are evicted after this"
    )

    # Analysis service
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    anthropic_base_url: str = Field(default="https://api.anthropic.com", description="Anthropic API URL")
    anthropic_model: str = Field(default="claude-3-5-haiku-latest", description="Model for analysis")
    analysis_timeout: int = Field(default=60, description="Analysis request timeout (s)")

    # Logging
    log_dir: str = Field(default="logs", description="Log file directory")

    # CORS
    allowed_origins: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Allowed CORS origins",
    )

    @property
    def blob_storage_enabled(self) -> bool:
        return bool(self.blob_bucket_name)

    def ensure_directories(self):
        """Create local directories the app writes to."""
        Path(self.upload_dir).mkdir(parents=True, exist_ok=True)
        Path(self.log_dir).mkdir(parents=True, exist_ok=True)


settings = Settings()
settings.ensure_directories()
