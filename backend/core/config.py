from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Compiler
    RAW_MODULES_DIR: str = "data/raw_modules"
    ARTIFACTS_DIR: str = "public/data"

    # Runtime artifact fetch
    ARTIFACTS_BASE_URL: str = "http://localhost:8000/data/"
    FETCH_TIMEOUT_SECONDS: float = 10.0

    # Study session
    PAGE_SIZE: int = 10
    DISPLAY_LANGUAGE: str = "ja"  # ja | en
    TRANSLATION_MODE: str = "intent"  # intent | literal

    # Narration
    NARRATION_LANG: str = "ko-KR"
    NARRATION_RATE: float = 0.85
    TRANSITION_DELAY_SECONDS: float = 1.0
    PAGE_FLIP_DELAY_SECONDS: float = 0.5
    AUTO_ADVANCE: bool = False

    # Backend
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 8000
    APP_DEBUG: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for production (structured JSON), False for dev (colored)

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
