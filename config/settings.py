from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _load_env() -> None:
    # Centralized dotenv loading; safe if .env missing
    load_dotenv()


def _as_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Provider credentials
    exa_api_key: str | None = None
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"

    # Core/runtime
    db_path: str = "profiles.db"
    run_env: str = "local"
    log_level: str = "INFO"

    # Batching and pacing
    enrich_batch_size: int = 50
    cache_chunk_size: int = 100
    batch_delay_seconds: float = 1.0

    # Company pages
    page_fetch_timeout_seconds: float = 10.0
    page_text_max_chars: int = 2000
    page_max_bytes: int = 1_000_000
    summary_context_max_chars: int = 4000
    user_agent: str = "Mozilla/5.0 (compatible; GuestEnricher/1.0)"

    # Logging/tracing
    llm_trace: bool = False
    llm_log_path: str = "logs/llm_calls.jsonl"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_env()
    return Settings(
        exa_api_key=os.getenv("EXA_API_KEY") or os.getenv("EXASEARCH_API_KEY"),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        db_path=os.getenv("DB_PATH", "profiles.db"),
        run_env=os.getenv("RUN_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        enrich_batch_size=int(os.getenv("ENRICH_BATCH_SIZE", "50")),
        cache_chunk_size=int(os.getenv("CACHE_CHUNK_SIZE", "100")),
        batch_delay_seconds=float(os.getenv("BATCH_DELAY_SECONDS", "1")),
        page_fetch_timeout_seconds=float(os.getenv("PAGE_FETCH_TIMEOUT_SECONDS", "10")),
        page_text_max_chars=int(os.getenv("PAGE_TEXT_MAX_CHARS", "2000")),
        page_max_bytes=int(os.getenv("PAGE_MAX_BYTES", "1000000")),
        summary_context_max_chars=int(os.getenv("SUMMARY_CONTEXT_MAX_CHARS", "4000")),
        user_agent=os.getenv("ENRICH_USER_AGENT", "Mozilla/5.0 (compatible; GuestEnricher/1.0)"),
        llm_trace=_as_bool(os.getenv("LLM_TRACE", "false")),
        llm_log_path=os.getenv("LLM_LOG_PATH", "logs/llm_calls.jsonl"),
    )
