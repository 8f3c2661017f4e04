"""
Unit tests for application settings.
"""

import pytest

from infrastructure.config.settings import Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestDatabaseUrl:
    @pytest.mark.parametrize(
        "raw",
        ["postgresql://u:p@db:5432/app", "postgres://u:p@db:5432/app"],
    )
    def test_postgres_urls_use_asyncpg(self, raw):
        assert _settings(database_url=raw).database_url == "postgresql+asyncpg://u:p@db:5432/app"

    def test_sqlite_url_is_untouched(self):
        settings = _settings(database_url="sqlite+aiosqlite:///./dev.db")
        assert settings.is_sqlite


class TestFrontendUrls:
    def test_first_frontend_url_is_the_link_base(self):
        settings = _settings(frontend_url="https://gantt.example.com/, https://app.example.com")
        assert settings.primary_frontend_url == "https://gantt.example.com"

    def test_cors_includes_www_twins(self):
        settings = _settings(frontend_url="https://gantt.example.com", cors_origins="")
        assert settings.cors_origins_list == [
            "https://gantt.example.com",
            "https://www.gantt.example.com",
        ]

    def test_localhost_has_no_www_twin(self):
        settings = _settings(frontend_url="http://localhost:5174", cors_origins="")
        assert settings.cors_origins_list == ["http://localhost:5174"]

    def test_extra_cors_origins_from_json_list(self):
        settings = _settings(
            frontend_url="http://localhost:5174",
            cors_origins='["http://localhost:3000"]',
        )
        assert "http://localhost:3000" in settings.cors_origins_list


class TestSecrets:
    def test_missing_secrets_are_generated(self):
        settings = _settings(jwt_secret_key="", jwt_refresh_secret_key="")
        assert len(settings.jwt_secret_key) >= 32
        assert settings.jwt_secret_key != settings.jwt_refresh_secret_key

    def test_production_requires_strong_secrets(self):
        settings = _settings(
            environment="production",
            jwt_secret_key="short",
            jwt_refresh_secret_key="x" * 40,
            google_client_id="client",
            frontend_url="https://gantt.example.com",
        )
        with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
            settings.validate_production_secrets()

    def test_production_requires_google_client_id(self):
        settings = _settings(
            environment="production",
            jwt_secret_key="x" * 40,
            jwt_refresh_secret_key="y" * 40,
            frontend_url="https://gantt.example.com",
        )
        with pytest.raises(ValueError, match="GOOGLE_CLIENT_ID"):
            settings.validate_production_secrets()

    def test_production_requires_https_frontend(self):
        settings = _settings(
            environment="production",
            jwt_secret_key="x" * 40,
            jwt_refresh_secret_key="y" * 40,
            google_client_id="client",
            frontend_url="http://gantt.example.com",
        )
        with pytest.raises(ValueError, match="https"):
            settings.validate_production_secrets()

    def test_development_skips_validation(self):
        _settings(environment="development").validate_production_secrets()
