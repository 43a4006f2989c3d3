"""Configuration management for Survey Classifier"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Service Configuration
    SERVICE_HOST: str = "survey-classifier"
    SERVICE_PORT: int = 8000
    SERVICE_NAME: str = "Survey Classifier"

    # Gemini Configuration
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash-lite"
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TIMEOUT: int = 60

    # Self-consistency Configuration
    DEFAULT_SAMPLE_COUNT: int = 3
    MAX_SAMPLE_COUNT: int = 7
    PARALLEL_SAMPLING: bool = True

    # Batch Configuration
    DEFAULT_ROW_CONCURRENCY: int = 4
    MAX_ROW_CONCURRENCY: int = 10
    MAX_SYNC_ROWS: int = 120

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
