"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures consistent configuration across the application.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="coach_voice")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)

    # Database Pool Configuration
    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour

    # API Configuration
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # LLM providers
    OPENAI_API_KEY: Optional[str] = Field(default=None)
    ANTHROPIC_API_KEY: Optional[str] = Field(default=None)
    # "openai" or "anthropic"
    COACH_COMPLETION_PROVIDER: str = Field(default="openai")
    COACH_OPENAI_MODEL: str = Field(default="gpt-4")
    COACH_ANTHROPIC_MODEL: str = Field(default="claude-3-5-sonnet-20241022")
    EXTERNAL_API_TIMEOUT: int = Field(default=30)

    # Embeddings (must match the pgvector column dimension)
    EMBEDDING_MODEL: str = Field(default="text-embedding-ada-002")
    EMBEDDING_DIMENSIONS: int = Field(default=1536)
    EMBEDDING_MAX_INPUT_CHARS: int = Field(default=8000)

    # Reply generation
    COACH_REPLY_MAX_TOKENS: int = Field(default=150)
    COACH_REPLY_TEMPERATURE: float = Field(default=0.8)
    COACH_PREFERENCE_TEMPERATURE: float = Field(default=0.7)
    COACH_PREFERENCE_MAX_TOKENS: int = Field(default=400)
    SMS_CHARACTER_BUDGET: int = Field(default=160)

    # Retrieval
    RETRIEVAL_LIMIT: int = Field(default=3, ge=1)
    RETRIEVAL_SIMILARITY_THRESHOLD: float = Field(default=0.7, ge=0.0, le=1.0)

    # Structured output retry bound
    STRUCTURED_MAX_ATTEMPTS: int = Field(default=3, ge=1)

    # Voice profile / conversation caps
    CATCHPHRASE_CAP: int = Field(default=10)
    CONVERSATION_RETENTION: int = Field(default=50)
    CONVERSATION_PROMPT_TURNS: int = Field(default=4)

    # Ingestion
    MIN_CONTENT_CHARS: int = Field(default=10)
    MAX_UPLOAD_BYTES: int = Field(default=10 * 1024 * 1024)  # 10 MB

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # CORS - comma-separated list of allowed origins for production
    CORS_ORIGINS: Optional[str] = Field(default=None)


# Global settings instance
settings = Settings()
