"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or .env file.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

MIB = 1024 * 1024


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required env vars (no defaults):
        POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_DB

    Model endpoints:
        OPENAI_API_KEY, OPENAI_BASE_URL, CHAT_MODEL, CHAT_MODEL_POWERFUL,
        EMBEDDING_PROVIDER (openai | ollama), EMBEDDING_MODEL, OLLAMA_BASE_URL,
        MODEL_TIMEOUT_SECONDS

    Processing and retrieval:
        UPLOAD_DIR, RETRIEVAL_K (5), RETRIEVAL_MAX_DISTANCE (0.6),
        CLASSIFIER_MAX_IMAGE_BYTES (5 MiB), CLASSIFIER_MAX_DOCUMENT_BYTES (20 MiB),
        PROCESSOR_WORKERS (4)
    """

    PROJECT_NAME: str = "Notekeeper AI"

    # Database
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str

    # Chat model (classification + answer synthesis)
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str | None = None
    CHAT_MODEL: str = "gpt-4o-mini"
    CHAT_MODEL_POWERFUL: str = "gpt-4o"  # Reserved for heavier prompts

    # Embedding model
    EMBEDDING_PROVIDER: str = "openai"
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    OLLAMA_BASE_URL: str = "http://host.docker.internal:11434"

    MODEL_TIMEOUT_SECONDS: float = 60.0

    # Storage
    UPLOAD_DIR: str = "uploads"

    # Retrieval
    RETRIEVAL_K: int = 5
    RETRIEVAL_MAX_DISTANCE: float = 0.6

    # Classifier attachment caps
    CLASSIFIER_MAX_IMAGE_BYTES: int = 5 * MIB
    CLASSIFIER_MAX_DOCUMENT_BYTES: int = 20 * MIB

    # Background processing
    PROCESSOR_WORKERS: int = 4

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL connection string using asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()  # type: ignore[call-arg]
