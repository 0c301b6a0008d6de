# podhost/config.py
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./podhost.db"
    env: Literal["dev", "stage", "prod"] = "dev"
    debug: bool = False
    log_level: str = "INFO"
    access_log: bool = True
    sql_echo: bool = False
    auto_init_db: bool = True

    # Base for derived links such as the podcast RSS URL
    public_base_url: str = "http://localhost:8080"

    # Audio storage settings
    audio_container: str = "podcast-audio"
    s3_region: str = "us-east-1"
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    s3_endpoint_url: Optional[str] = None  # Tigris, R2, MinIO
    s3_public_url_base: Optional[str] = None  # CDN origin
    storage_local: bool = True  # True = local filesystem (dev only)
    local_storage_root: str = "var/storage"
    local_url_prefix: str = "/media"

    @property
    def is_dev(self) -> bool:
        return self.env == "dev" or self.debug is True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
