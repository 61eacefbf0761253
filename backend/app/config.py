"""
MindfulMate Configuration
=========================
All environment variables in one place. Pydantic Settings validates
types at startup so a bad store backend or window size fails on boot,
not halfway through someone's conversation.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Loaded from environment variables or a .env file."""

    # --- Persistence ---
    # sqlite is the embedded default; supabase points the same tables at
    # a hosted Postgres project.
    store_backend: Literal["sqlite", "supabase"] = "sqlite"
    database_path: str = "database.db"

    # --- Supabase (only read when store_backend == "supabase") ---
    supabase_url: str = "http://localhost:54321"
    supabase_service_key: str = ""

    # --- Anthropic / Claude API ---
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    # Reply text plus suggestions, still a small JSON object
    anthropic_max_tokens: int = 512
    anthropic_timeout_seconds: float = 30.0

    # --- Conversation ---
    # Number of prior turns forwarded to the model. None forwards everything.
    history_window_turns: Optional[int] = Field(default=10, ge=1)

    # --- App settings ---
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # --- Feature flags ---
    # Kill switch: if False, skip the Claude API and answer every turn with
    # the fallback reply. Useful for testing and dev without an API key.
    enable_ai_classification: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
