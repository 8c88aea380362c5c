# product_form/config.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from pathlib import Path
from functools import lru_cache
import tempfile


class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:3000"

    # the remote API expects the token under a custom header, prefixed
    ACCESS_TOKEN_HEADER: str = "accesstoken"
    ACCESS_TOKEN_PREFIX: str = "accesstoken_"

    REQUEST_TIMEOUT: float = 30.0

    # local previews for newly attached images
    PREVIEW_DIR: Path = Path(tempfile.gettempdir()) / "product_form_previews"
    PREVIEW_SIZE: int = 300

    # Example .env:
    # API_BASE_URL=https://shop.example.com/api
    # PREVIEW_DIR=./previews

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()


settings = Settings()
