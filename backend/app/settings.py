from __future__ import annotations

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

REPO_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = REPO_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE), env_file_encoding="utf-8", extra="ignore"
    )

    DEBUG: bool = False

    # persistence directory (defaults to ~/.obsidian-club-data)
    DATA_DIR: Path | None = None
    DATABASE_URL: str | None = None

    # CORS allow origins (comma-separated). Default empty (no cross-origin).
    CORS_ALLOW_ORIGINS: str = ""

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REQUESTS: int = 120  # per window per client
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # Venue
    VENUE_NAME: str = "Obsidian Social Club"
    VENUE_TIMEZONE: str = "America/Mexico_City"

    # Chat assistant / LLM
    LLM_API_KEY: str | None = Field(
        default=None, validation_alias=AliasChoices("LLM_API_KEY", "GROQ_API_KEY")
    )
    LLM_API_BASE: str = "https://api.groq.com/openai/v1"
    LLM_MODELS: str = "llama-3.3-70b-versatile,llama-3.1-8b-instant"
    LLM_ATTEMPTS_PER_MODEL: int = 3
    LLM_BACKOFF_SECONDS: float = 1.0
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 1024
    LLM_TIMEOUT_SECONDS: float = 30.0
    LLM_CONNECT_TIMEOUT_SECONDS: float = 5.0
    KNOWLEDGE_EVENTS_LIMIT: int = 10

    # Reservations booked through the chat widget
    BOOKING_API_BASE: str = "http://localhost:8000"
    CHAT_EMAIL_DOMAIN: str = "chat.obsidian.com"
    CHAT_DEFAULT_TIME: str = "22:00"
    CHAT_RESERVATION_NOTE: str = "Reservación via chat"

    # Observability
    SENTRY_DSN: str | None = None
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_RELEASE: str | None = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.2

    @property
    def allow_origins(self) -> list[str]:
        s = (self.CORS_ALLOW_ORIGINS or "").strip()
        if s == "*":
            return ["*"]
        if s == "":
            return []
        return [part.strip() for part in s.split(",") if part.strip()]

    @property
    def llm_models(self) -> tuple[str, ...]:
        return tuple(part.strip() for part in self.LLM_MODELS.split(",") if part.strip())

    @property
    def venue_tz(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.VENUE_TIMEZONE or "America/Mexico_City")
        except ZoneInfoNotFoundError:
            return ZoneInfo("America/Mexico_City")

    @property
    def data_dir(self) -> Path:
        # Blank DATA_DIR values count as unset; Pydantic would otherwise resolve them to Path('.').
        def _materialize(path: Path) -> Path:
            path.mkdir(parents=True, exist_ok=True)
            return path

        raw_env = os.getenv("DATA_DIR")
        if raw_env is not None:
            trimmed = raw_env.strip()
            if trimmed:
                return _materialize(Path(trimmed).expanduser().resolve())
            return _materialize(Path.home() / ".obsidian-club-data")

        if self.DATA_DIR is not None:
            candidate = Path(self.DATA_DIR).expanduser()
            candidate_str = str(candidate).strip()
            if candidate_str and candidate_str not in {".", "./", ".\\"}:
                return _materialize(candidate.resolve())
        return _materialize(Path.home() / ".obsidian-club-data")

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        default_path = self.data_dir / "obsidian_club.db"
        return f"sqlite:///{default_path}"

    @property
    def async_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///"):
            return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)
        return url


settings = Settings()
