"""bomcheck configuration management.

Loads configuration from environment variables with sensible defaults.
Thresholds used by the compliance rules live here so they can be tuned per
deployment without touching the rule code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass
class DBConfig:
    """Database connection configuration (parsed-quote cache, report snapshots)."""

    url: str = "sqlite+aiosqlite:///./bomcheck.db"
    pool_size: int = 10
    pool_max_overflow: int = 20
    pool_timeout: int = 30
    echo: bool = False  # SQL logging


@dataclass
class LLMConfig:
    """LLM configuration for quote extraction, reconciliation and BOM analysis."""

    provider: str = "openai"
    api_key: str | None = None
    llm_model: str = "gpt-4o-mini"
    vision_model: str = "gpt-4o"
    temperature: float = 0.1
    max_tokens: int = 4000
    max_input_chars: int = 15000  # Text sent to the model is truncated to this

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class ComplianceConfig:
    """Compliance rule thresholds and matching policy."""

    min_sku_length: int = 3
    max_quantity: int = 10000  # Soft ceiling, flagged as unusually high above this
    match_score_threshold: int = 50  # Minimum score for a quote line match to count
    suggested_fix_confidence: int = 75
    scanned_words_per_page: int = 50  # Below this, a PDF is treated as scanned
    quote_concurrency: int = 1  # Quotes are resolved one at a time
    reconciler: str = "llm"  # llm or fuzzy
    fuzzy_min_score: int = 50


@dataclass
class HTTPConfig:
    """Outbound HTTP settings for downloading quote documents."""

    download_timeout_seconds: float = 60.0
    user_agent: str = "bomcheck/1.0"


@dataclass
class AppConfig:
    """Root application configuration."""

    db: DBConfig = field(default_factory=DBConfig)
    log_level: str = "INFO"
    log_format: str = "text"  # json or text
    log_file: str | None = None

    llm: LLMConfig = field(default_factory=LLMConfig)
    compliance: ComplianceConfig = field(default_factory=ComplianceConfig)
    http: HTTPConfig = field(default_factory=HTTPConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        All settings are optional. The AI-backed features check
        ``llm.configured`` themselves and fail with a configuration error
        when they are requested without OPENAI_API_KEY.
        """
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format="json" if os.getenv("JSON_LOGS", "false").lower() == "true" else "text",
            log_file=os.getenv("LOG_FILE") or None,
            db=DBConfig(
                url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./bomcheck.db"),
                pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
                pool_max_overflow=int(os.getenv("DB_POOL_MAX_OVERFLOW", "20")),
                pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
                echo=os.getenv("DB_ECHO", "false").lower() == "true",
            ),
            llm=LLMConfig(
                provider=os.getenv("LLM_PROVIDER", "openai"),
                api_key=os.getenv("OPENAI_API_KEY") or None,
                llm_model=os.getenv("LLM_MODEL", "gpt-4o-mini"),
                vision_model=os.getenv("VISION_MODEL", "gpt-4o"),
                temperature=float(os.getenv("LLM_TEMPERATURE", "0.1")),
                max_tokens=int(os.getenv("LLM_MAX_TOKENS", "4000")),
                max_input_chars=int(os.getenv("LLM_MAX_INPUT_CHARS", "15000")),
            ),
            compliance=ComplianceConfig(
                min_sku_length=int(os.getenv("MIN_SKU_LENGTH", "3")),
                max_quantity=int(os.getenv("MAX_QUANTITY", "10000")),
                match_score_threshold=int(os.getenv("MATCH_SCORE_THRESHOLD", "50")),
                suggested_fix_confidence=int(
                    os.getenv("SUGGESTED_FIX_CONFIDENCE", "75")
                ),
                scanned_words_per_page=int(os.getenv("SCANNED_WORDS_PER_PAGE", "50")),
                quote_concurrency=int(os.getenv("QUOTE_CONCURRENCY", "1")),
                reconciler=os.getenv("RECONCILER", "llm").lower(),
                fuzzy_min_score=int(os.getenv("FUZZY_MIN_SCORE", "50")),
            ),
            http=HTTPConfig(
                download_timeout_seconds=float(
                    os.getenv("DOWNLOAD_TIMEOUT_SECONDS", "60")
                ),
                user_agent=os.getenv("HTTP_USER_AGENT", "bomcheck/1.0"),
            ),
        )


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached config so the next get_config() re-reads the environment."""
    global _config
    _config = None
