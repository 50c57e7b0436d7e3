"""Application configuration via pydantic-settings."""

import os
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root (where this file lives: backend/spa_fallback/config.py)
_PROJECT_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Asset source mode – bundled package data unless development is switched on
    SPA_DEVELOPMENT: bool = False

    # Bundled assets: <package>/<resource> shipped as package data
    SPA_BUNDLE_PACKAGE: str = "spa_fallback"
    SPA_BUNDLE_RESOURCE: str = "dist"

    # Development assets: live directory, relative to SPA_BASE_DIR (or the cwd)
    SPA_DEVELOPMENT_PATH: str = "dist"
    SPA_BASE_DIR: Optional[str] = None

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    @property
    def base_dir(self) -> Path:
        """Directory that relative development paths are resolved against."""
        if self.SPA_BASE_DIR:
            return Path(self.SPA_BASE_DIR)
        return Path.cwd()


def _build_settings() -> Settings:
    """Build settings, fixing a relative base directory to be absolute."""
    s = Settings(
        _env_file=str(_PROJECT_DIR / ".env"),
        _env_file_encoding="utf-8",
    )
    if s.SPA_BASE_DIR and not os.path.isabs(s.SPA_BASE_DIR):
        s.SPA_BASE_DIR = os.path.abspath(s.SPA_BASE_DIR)
    return s


settings = _build_settings()
