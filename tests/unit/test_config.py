"""Tests for contract_studio.config."""

from contract_studio.config import Settings, get_settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        for var in ("DATABASE_URL", "ANALYSIS_AI_MODEL", "OPENAI_MODEL", "CORS_ORIGINS"):
            monkeypatch.delenv(var, raising=False)
        settings = Settings(_env_file=None)

        assert settings.openai_model == "gpt-4o"
        assert settings.analysis_model == "gpt-4o-mini"
        assert settings.gemini_model == "gemini-1.5-pro"
        assert settings.grok_base_url == "https://api.x.ai/v1"
        assert settings.generation_temperature == 0.3
        assert settings.gemini_temperature == 0.2
        assert settings.analysis_timeout_seconds == 120.0
        assert settings.stale_analysis_minutes == 30
        assert settings.analysis_ai_model == "openai"
        assert settings.database_url is None
        assert not settings.uses_database
        assert settings.cors_origin_list == ["*"]

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///studio.db")
        monkeypatch.setenv("LOG_JSON", "true")
        settings = Settings(_env_file=None)

        assert settings.openai_api_key == "sk-from-env"
        assert settings.uses_database
        assert settings.log_json is True

    def test_analysis_route_normalized(self):
        settings = Settings(_env_file=None, analysis_ai_model="  Gemini ")
        assert settings.analysis_ai_model == "gemini"

    def test_comma_separated_cors_origins(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGINS", "https://app.example.com, https://admin.example.com")
        settings = Settings(_env_file=None)
        assert settings.cors_origin_list == [
            "https://app.example.com",
            "https://admin.example.com",
        ]


class TestGetSettings:

    def test_cached(self):
        assert get_settings() is get_settings()
