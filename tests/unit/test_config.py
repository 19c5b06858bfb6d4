"""Unit tests for bomcheck configuration management."""

from __future__ import annotations

from bomcheck.config import AppConfig, get_config, reset_config


class TestAppConfig:
    """Test AppConfig loading from environment variables."""

    def test_defaults(self, monkeypatch):
        """Test defaults with a bare environment."""
        for name in ("DATABASE_URL", "LOG_LEVEL", "JSON_LOGS"):
            monkeypatch.delenv(name, raising=False)

        config = AppConfig.from_env()

        assert config.db.url == "sqlite+aiosqlite:///./bomcheck.db"
        assert config.log_level == "INFO"
        assert config.log_format == "text"
        assert config.llm.configured is False
        assert config.compliance.min_sku_length == 3
        assert config.compliance.max_quantity == 10000
        assert config.compliance.match_score_threshold == 50
        assert config.compliance.quote_concurrency == 1
        assert config.compliance.reconciler == "llm"

    def test_openai_key(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        config = AppConfig.from_env()
        assert config.llm.configured is True
        assert config.llm.api_key == "sk-test"

    def test_empty_key_is_unconfigured(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "")
        assert AppConfig.from_env().llm.configured is False

    def test_compliance_overrides(self, monkeypatch):
        """Test rule thresholds can be tuned per deployment."""
        monkeypatch.setenv("MATCH_SCORE_THRESHOLD", "70")
        monkeypatch.setenv("MAX_QUANTITY", "500")
        monkeypatch.setenv("SCANNED_WORDS_PER_PAGE", "20")
        monkeypatch.setenv("RECONCILER", "FUZZY")

        config = AppConfig.from_env()

        assert config.compliance.match_score_threshold == 70
        assert config.compliance.max_quantity == 500
        assert config.compliance.scanned_words_per_page == 20
        assert config.compliance.reconciler == "fuzzy"

    def test_json_logs(self, monkeypatch):
        monkeypatch.setenv("JSON_LOGS", "true")
        assert AppConfig.from_env().log_format == "json"


class TestGetConfig:
    def test_singleton(self):
        assert get_config() is get_config()

    def test_reset_rereads_environment(self, monkeypatch):
        first = get_config()
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        reset_config()

        second = get_config()

        assert second is not first
        assert second.log_level == "WARNING"
