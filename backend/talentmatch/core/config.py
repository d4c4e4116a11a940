# talentmatch/core/config.py
from __future__ import annotations
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field

# Resolve the .env alongside the backend package root (adjust if your layout differs)
ENV_PATH = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseSettings):

    # --- App info ---
    APP_NAME: str = Field(default="TalentMatch")

    # --- HTTP ---
    CORS_ORIGINS: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Browser origins allowed to call the API (JSON list in env)",
    )

    # --- Database ---
    DATABASE_URL: str = Field(
        default="sqlite:///./talentmatch.db",
        description="SQLAlchemy URL. Production uses PostgreSQL with pgvector (postgresql+psycopg://...)",
    )

    # --- LLM provider ---
    LLM_PROVIDER: str = Field(default="openai", description="'openai' or 'ollama'")
    OPENAI_API_KEY: str | None = Field(default=None, description="API key for OpenAI services")
    OLLAMA_BASE_URL: str | None = Field(default=None, description="Base URL of local Ollama server")

    # --- Structured extraction ---
    EXTRACTION_MODEL_FAST: str = Field(default="gpt-4o-mini", description="Model used for the 'fast' extraction tier")
    EXTRACTION_MODEL_CAPABLE: str = Field(default="gpt-4o", description="Model used for the 'capable' extraction tier")
    EXTRACTION_MODEL_TIER: str = Field(default="capable", description="Tier used when the caller does not pick one")
    EXTRACTION_TEMPERATURE: float = Field(default=0.2)
    MIN_PROFILE_TEXT_LENGTH: int = Field(default=10, description="Shorter normalized text is rejected as unusable")

    # --- Embeddings ---
    EMBEDDING_MODEL: str = Field(default="text-embedding-3-small")
    EMBEDDING_DIM: int = Field(default=1536)
    EMBEDDING_MAX_CHARS: int = Field(default=8000, description="Embedding input is truncated to this length")

    # --- Provider calls ---
    PROVIDER_TIMEOUT_SEC: float = Field(default=60.0)

    # --- Object store (resume files) ---
    STORAGE_DIR: str = Field(default="./data/resume_files")
    STORAGE_PUBLIC_BASE_URL: str = Field(default="http://localhost:8000/files")

    # --- Batch processing ---
    BATCH_MAX_WORKERS: int = Field(default=1, ge=1, description="1 processes files sequentially")

    # --- Folder watcher ---
    WATCH_DIR: str = Field(default="./data/resumes")
    WATCH_CREATOR_ID: str = Field(default="watcher")

    class Config:
        env_file = str(ENV_PATH)
        case_sensitive = True

    @property
    def storage_path(self) -> Path:
        return Path(self.STORAGE_DIR).resolve()


settings = Settings()
