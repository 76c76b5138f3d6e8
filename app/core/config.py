from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    project_name: str = "IcoPack"
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-ID"
    log_level: str = "INFO"
    max_upload_size_bytes: int = 10 * 1024 * 1024
    allowed_image_formats: tuple[str, ...] = ("PNG", "JPEG", "WEBP", "GIF", "BMP", "TIFF")
    ico_sizes: tuple[int, ...] = (16, 32, 48, 64, 128, 256)
    max_render_size: int = 1024
    favicon_size: int = 32
    master_size: int = 1024
    linux_size: int = 512
    default_algorithm: str = "LANCZOS"
    output_dir: Path = Path("assets")

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="ICOPACK_", extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()
