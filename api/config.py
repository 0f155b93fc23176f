"""
Application configuration
"""
from pathlib import Path
from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    VERSION: str = Field("1.0.0")

    API_HOST: str = Field("0.0.0.0")
    API_PORT: int = Field(3000, validation_alias=AliasChoices("PORT", "API_PORT"))
    # One process only: the executor semaphore bounds engine fan-out per process.
    API_WORKERS: int = Field(1)
    API_RELOAD: bool = Field(False)
    API_LOG_LEVEL: str = Field("info")
    DEBUG: bool = Field(False)
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    FFMPEG_PATH: str = Field("ffmpeg")
    FFPROBE_PATH: str = Field("ffprobe")

    STORAGE_PATH: Path = Field(Path("."))
    UPLOAD_DIR: str = Field("uploads")
    TRIMMED_DIR: str = Field("trimmed")
    RESULTS_DIR: str = Field("results")

    MAX_CONCURRENT_JOBS: int = Field(4, ge=1)
    JOB_TIMEOUT_SECONDS: float = Field(600.0, ge=0)
    MAX_UPLOAD_SIZE: int = Field(0, ge=0)

    ENABLE_METRICS: bool = Field(True)

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


settings = Settings()
