"""Engine settings and configuration.

This module defines the configuration options for the Reel Stage engine.
Settings are loaded from environment variables with sensible defaults.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Settings can be overridden via environment variables or a `.env` file.
    """

    # Application metadata
    app_name: str = Field(default="Reel Stage", alias="APP_NAME")

    # Backing file location
    data_dir: Path = Field(default=Path("./data"), alias="REEL_DATA_DIR")
    db_filename: str = Field(default="app.json", alias="REEL_DB_FILENAME")

    # Seed the default category list when none survive migration
    seed_categories: bool = Field(default=True, alias="REEL_SEED_CATEGORIES")

    # Listing limits
    max_page_size: int = Field(default=30, alias="REEL_MAX_PAGE_SIZE")
    default_page_size: int = Field(default=10, alias="REEL_DEFAULT_PAGE_SIZE")
    max_tags_per_post: int = Field(default=5, alias="REEL_MAX_TAGS_PER_POST")

    # Upper bound on waiting for queued snapshots at shutdown
    flush_timeout_seconds: float = Field(default=10.0, alias="REEL_FLUSH_TIMEOUT_SECONDS")

    log_level: str = Field(default="INFO", alias="REEL_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_path(self) -> Path:
        """Return the canonical path of the backing file.

        Returns:
            The data directory joined with the configured file name
        """
        return self.data_dir / self.db_filename


settings = Settings()
