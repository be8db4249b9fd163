"""Application configuration using pydantic-settings."""

import logging
import sys
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "Report Collector"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8081

    # Metadata store database
    database_url: str = "sqlite+aiosqlite:///./data/report_collector.db"

    # Database connection pooling (for PostgreSQL/MySQL)
    db_pool_size: int = 20
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600  # Recycle connections after 1 hour
    db_pool_pre_ping: bool = True  # Test connections before using

    # Directories
    base_dir: Path = Path(__file__).parent.parent
    upload_dir: Path = Path("./reports")
    logs_dir: Path = Path("./logs")
    data_dir: Path = Path("./data")

    # Uploads
    max_upload_size: int = 2 * 1024 * 1024  # 2 MiB, whole request body
    upload_field: str = "upload"
    junit_content_type: str = "text/vnd.junit-xml"

    # Index sink (empty URL disables delivery)
    index_url: str = "http://jenkins-x-reports-elasticsearch-client:9200/tests/junit/"
    index_timeout: float = 10.0

    # Public base URL of the report download server
    report_host: str = "http://localhost:8080"

    # Metadata merges
    merge_max_retries: int = 5
    request_deadline_seconds: float = 30.0

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # text or json

    @model_validator(mode="after")
    def make_paths_absolute(self) -> "Settings":
        """Convert relative paths to absolute based on base_dir."""
        if not self.upload_dir.is_absolute():
            self.upload_dir = self.base_dir / self.upload_dir
        if not self.logs_dir.is_absolute():
            self.logs_dir = self.base_dir / self.logs_dir
        if not self.data_dir.is_absolute():
            self.data_dir = self.base_dir / self.data_dir

        if self.max_upload_size <= 0:
            raise ValueError("max_upload_size must be positive")
        if self.merge_max_retries < 1:
            raise ValueError("merge_max_retries must be at least 1")
        if self.log_format not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")

        self.report_host = self.report_host.rstrip("/")
        return self

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        logger = logging.getLogger(__name__)

        for dir_path in [self.upload_dir, self.logs_dir, self.data_dir]:
            try:
                dir_path.mkdir(parents=True, exist_ok=True)
            except (PermissionError, OSError) as e:
                # Directories may be provisioned externally (mounted volumes)
                logger.warning(
                    f"Could not create directory {dir_path}: {e}. "
                    "The directory may already exist or have permission issues."
                )
                if not dir_path.exists():
                    print(
                        f"Warning: Directory {dir_path} does not exist "
                        f"and could not be created: {e}",
                        file=sys.stderr,
                    )


_settings_cache: Settings | None = None


def get_settings(reload: bool = False) -> Settings:
    """Get settings instance with optional reload."""
    global _settings_cache
    if _settings_cache is None or reload:
        _settings_cache = Settings()
    return _settings_cache
