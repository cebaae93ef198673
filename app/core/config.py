"""
Application configuration settings
"""

from pydantic_settings import BaseSettings
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Vigilent Risk Analysis"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    APP_URL: str = "http://localhost:3000"  # Sent as HTTP-Referer to OpenRouter

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    # Database (holds the ai_analysis_cache table)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # LLM Configuration (OpenAI-compatible endpoint, OpenRouter by default)
    OPENROUTER_API_KEY: Optional[str] = None
    LLM_BASE_URL: str = "https://openrouter.ai/api/v1"
    LLM_MODEL: str = "deepseek/deepseek-chat"
    LLM_TEMPERATURE: float = 0.3
    LLM_MAX_TOKENS: int = 1500
    LLM_TIMEOUT_SECONDS: float = 60.0

    # Analysis cache
    CACHE_TIMEOUT_SECONDS: float = 5.0

    # Batch analysis
    BATCH_CONCURRENCY: int = 10

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
