"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK (Junior Developer Guide) ───────────────────────
#
# pydantic-settings reads configuration from two sources, in priority order:
#
#   1. **Environment variables**, e.g. ANTHROPIC_API_KEY=sk-ant-...
#   2. **.env file** in the project root (local development only)
#
# Field `voyage_api_key` maps to env var `VOYAGE_API_KEY` automatically.
# Defaults below apply when neither source sets a value.
#
# Empty strings mean "not configured".  Nothing here raises at startup:
# main.py inspects what is present and degrades (no datastore -> live
# discovery only; no cron secret -> crawl endpoint always 401).
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Kickflip application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # === Datastore ===
    # SQLite path ("data/kickflip.db") or "sqlite:///data/kickflip.db".
    # Empty = no-backend mode: no cache, no index, no crawl.
    datastore_url: str = ""

    # === LLM Providers ===
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, etc.)
    openai_text_model: str = ""

    # === Embeddings ===
    voyage_api_key: str = ""
    voyage_model: str = "voyage-3-lite"
    openai_embedding_model: str = ""

    # === Auth ===
    google_client_id: str = ""
    cron_secret: str = ""

    # === HTTP ===
    public_api_base_url: str = ""  # allowed CORS origin; empty = allow all

    # === Retrieval ===
    retrieval_high_threshold: float = 0.72
    retrieval_high_limit: int = 10
    retrieval_high_min_results: int = 3
    retrieval_low_threshold: float = 0.50
    retrieval_low_limit: int = 6
    retrieval_low_min_results: int = 2

    # === Lifetimes ===
    cache_ttl_hours: int = 6
    undated_event_ttl_days: int = 7

    # === Discovery / crawl ===
    crawl_window_days: int = 7
    discovery_max_turns: int = 6
    chat_llm_timeout_seconds: float = 25.0
    crawl_llm_timeout_seconds: float = 120.0

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def has_backend(self) -> bool:
        """Return ``True`` when a datastore is configured."""
        return bool(self.datastore_url.strip())

    def datastore_path(self) -> Path:
        """Filesystem path of the SQLite datastore.

        Accepts both a bare path and a ``sqlite:///`` URL.
        """
        url = self.datastore_url.strip()
        for prefix in ("sqlite:///", "sqlite://"):
            if url.startswith(prefix):
                url = url[len(prefix) :]
                break
        return Path(url)

    def get_available_llm_providers(self) -> list[str]:
        """Return the LLM provider names that have API keys configured."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        return providers
