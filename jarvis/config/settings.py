"""
Jarvis - Centralized Configuration
===================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``GOOGLE_API_KEY`` is typed as ``SecretStr`` and has **no default value**.
  If the key is missing at startup, Pydantic will raise a ``ValidationError``
  with a clear error message.  The raw value is never exposed in repr,
  logs, or tracebacks.
- ``MONGO_URI`` is also ``SecretStr`` — connection strings contain
  credentials and must never leak into logs.

Policy constants
----------------
Candidate pool, similarity limit, history limit, token cap, temperature,
retention window and sweep interval are plain fields so they can be read
(and overridden in tests) by name instead of living inline in the code.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).
    Fields *without* a default are **required** — the app will refuse
    to start until they are provided.

    Attributes
    ----------
    GOOGLE_API_KEY : SecretStr
        API key for Google AI Studio (Gemini).  **Required.**
    MONGO_URI : SecretStr
        MongoDB connection string (Atlas, for ``$vectorSearch``).  **Required.**
    MONGO_DB_NAME / MONGO_COLLECTION_NAME : str
        Logical database and collection holding the exchanges.
    MONGO_MAX_POOL_SIZE : int
        Upper bound of the driver-managed connection pool.
    VECTOR_INDEX_NAME : str
        Name of the Atlas Vector Search index over ``embedding``.
    EMBEDDING_MODEL / EMBEDDING_DIMENSIONS
        Embedding model identifier and its output size.
    LLM_MODEL / LLM_MAX_TOKENS / LLM_TEMPERATURE
        Chat model identifier and its generation limits.
    SIMILARITY_CANDIDATES / SIMILARITY_LIMIT
        ``numCandidates`` and ``limit`` of the similarity query.
    HISTORY_LIMIT : int
        Number of exchanges served by ``/chat-history``.
    RETENTION_DAYS / SWEEP_INTERVAL_HOURS : int
        Maximum exchange age and time between retention sweeps.
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    STATIC_DIR: Path = BASE_DIR / "public"

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"

    # ── HTTP Server ────────────────────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # ── API Keys (REQUIRED — no default) ───────────────────────────────
    GOOGLE_API_KEY: SecretStr

    # ── MongoDB (REQUIRED — no default) ────────────────────────────────
    MONGO_URI: SecretStr
    MONGO_DB_NAME: str = "chatbot_db"
    MONGO_COLLECTION_NAME: str = "chats"
    MONGO_MAX_POOL_SIZE: int = 20
    VECTOR_INDEX_NAME: str = "vector_index"

    # ── Model Configuration ────────────────────────────────────────────
    EMBEDDING_MODEL: str = "gemini-embedding-001"
    EMBEDDING_DIMENSIONS: int = 3072
    LLM_MODEL: str = "gemini-2.0-flash"
    LLM_MAX_TOKENS: int = 150
    LLM_TEMPERATURE: float = 0.7

    # ── Retrieval Policy ───────────────────────────────────────────────
    SIMILARITY_CANDIDATES: int = 10000
    SIMILARITY_LIMIT: int = 50
    HISTORY_LIMIT: int = 50

    # ── Retention ──────────────────────────────────────────────────────
    RETENTION_DAYS: int = 7
    SWEEP_INTERVAL_HOURS: int = 24

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("EMBEDDING_MODEL", "LLM_MODEL")
    @classmethod
    def _model_name_present(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Model identifier must not be empty")
        return v.strip()


    @field_validator("EMBEDDING_DIMENSIONS", "LLM_MAX_TOKENS", "SIMILARITY_CANDIDATES", "SIMILARITY_LIMIT", "HISTORY_LIMIT", "RETENTION_DAYS", "SWEEP_INTERVAL_HOURS", "MONGO_MAX_POOL_SIZE")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Value must be ≥ 1, got {v}")
        return v


    @field_validator("LLM_TEMPERATURE")
    @classmethod
    def _temperature_range(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError(f"LLM_TEMPERATURE must be 0.0–2.0, got {v}")
        return v

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this throughout the project:
#     from jarvis.config.settings import settings
settings = Settings()
