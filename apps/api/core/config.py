"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures consistent configuration across the API, the worker and beat.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# apps/api/core/config.py -> repository root
_REPO_ROOT = Path(__file__).resolve().parents[3]


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration
    # DATABASE_URL wins when set (e.g. sqlite:///./habits.sqlite for local runs).
    DATABASE_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="habit_narrator")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)

    # Database Pool Configuration
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour

    # API Configuration
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Celery Configuration
    CELERY_BROKER_URL: str = Field(default="redis://redis:6379/0")
    CELERY_RESULT_BACKEND: str = Field(default="redis://redis:6379/0")

    # Storage
    # Clip audio paths are stored relative to PROJECT_ROOT.
    PROJECT_ROOT: Path = Field(default=_REPO_ROOT)
    HABIT_AUDIO_OUTPUT_DIR: Optional[Path] = Field(default=None)
    NARRATOR_SAMPLE_DIR: Optional[Path] = Field(default=None)

    # Script generation (chat completions endpoint)
    OPENAI_API_KEY: Optional[str] = Field(default=None)
    SCRIPT_API_URL: str = Field(default="https://api.openai.com/v1/chat/completions")
    TTS_SCRIPT_MODEL: str = Field(default="gpt-4o")
    SCRIPT_REQUEST_TIMEOUT_S: float = Field(default=30.0)

    # TTS server
    # When TTS_SERVER_URL is unset the default gateway is probed, then localhost.
    TTS_SERVER_URL: Optional[str] = Field(default=None)
    TTS_SERVER_PORT: int = Field(default=5000)
    TTS_GENERATE_PATH: str = Field(default="/generate_audio")
    # Shared directory the TTS server writes <token>.wav into
    TTS_VOICES_DIR: Path = Field(default=Path.home() / "Documents" / "bark" / "voices")
    TTS_WARMUP_ATTEMPTS: int = Field(default=300, ge=1)
    TTS_WARMUP_DELAY_MS: int = Field(default=1000, ge=0)
    TTS_REQUEST_TIMEOUT_S: float = Field(default=30.0)
    TTS_FILE_TIMEOUT_MS: int = Field(default=150_000, ge=0)
    TTS_FILE_POLL_MS: int = Field(default=250, ge=1)

    # Nightly generation
    AUDIO_GENERATION_TZ: Optional[str] = Field(default=None)  # None = server local time
    AUDIO_GENERATION_HOUR: int = Field(default=1, ge=0, le=23)
    AUDIO_GENERATION_MINUTE: int = Field(default=0, ge=0, le=59)
    AUDIO_GENERATION_NARRATOR_ID: Optional[int] = Field(default=None)

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # CORS - comma-separated list of allowed origins for production
    CORS_ORIGINS: Optional[str] = Field(default=None)

    @property
    def audio_output_dir(self) -> Path:
        return self.HABIT_AUDIO_OUTPUT_DIR or (self.PROJECT_ROOT / "audio" / "generated")

    @property
    def narrator_sample_dir(self) -> Path:
        return self.NARRATOR_SAMPLE_DIR or (self.PROJECT_ROOT / "audio" / "narrator-samples")


# Global settings instance
settings = Settings()
