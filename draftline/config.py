"""Configuration management using pydantic-settings."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database settings
    db_server: str = "localhost"
    db_name: str = "draftline"
    db_user: str = "draftline"
    db_password: str = ""
    db_port: int = 5432
    db_pool_size: int = 10
    db_max_overflow: int = 20
    sql_echo: bool = False
    # Full SQLAlchemy URL, wins over the db_* parts when set
    database_url_override: Optional[str] = None

    # MinIO settings (snapshot previews)
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_secure: bool = False
    preview_bucket: str = "draftline-previews"

    # Redis settings (cross-worker WebSocket pub/sub)
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 20
    redis_socket_timeout: float = 5.0
    redis_retry_on_timeout: bool = True
    redis_required: bool = False  # Set True for multi-worker deployment

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # WebSocket settings
    ws_max_connections_per_room: int = 200
    ws_max_message_size: int = 65536  # 64KB max client message size

    # Versioning settings
    default_project_name: str = "Personal Workspace"
    default_project_description: str = "Auto-created for version control"
    default_branch_name: str = "Main"
    default_trigger_type: str = "snapshot"
    snapshot_previews_enabled: bool = True
    # Number of text lines drawn into a snapshot preview
    preview_max_lines: int = 40

    @property
    def database_url(self) -> str:
        """Build PostgreSQL async connection string."""
        if self.database_url_override:
            return self.database_url_override
        from urllib.parse import quote_plus
        return (
            f"postgresql+asyncpg://{self.db_user}:{quote_plus(self.db_password)}"
            f"@{self.db_server}:{self.db_port}/{self.db_name}"
        )

    @property
    def sync_database_url(self) -> str:
        """Build PostgreSQL sync connection string for Alembic."""
        from urllib.parse import quote_plus
        return (
            f"postgresql+psycopg2://{self.db_user}:{quote_plus(self.db_password)}"
            f"@{self.db_server}:{self.db_port}/{self.db_name}"
        )


# Global settings instance
settings = Settings()
