"""Tests for environment settings and database URL handling."""

from weekscore.config import Settings
from weekscore.db import normalize_database_url


class TestSettings:
    def test_reads_plain_database_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db:5432/weeks")
        assert Settings(_env_file=None).database_url == "postgres://u:p@db:5432/weeks"

    def test_reads_plain_api_key(self, monkeypatch):
        monkeypatch.setenv("API_KEY", "secret")
        assert Settings(_env_file=None).api_key == "secret"

    def test_prefixed_variable_ignored(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("WEEKSCORE_DATABASE_URL", "postgres://elsewhere/db")
        assert Settings(_env_file=None).database_url == "postgresql+asyncpg://localhost:5432/weekscore"

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("SELECTION_LOOKBACK_WEEKS", raising=False)
        monkeypatch.delenv("QUARTER_LENGTH_DAYS", raising=False)
        s = Settings(_env_file=None)
        assert s.selection_lookback_weeks == 12
        assert s.quarter_length_days == 84


class TestNormalizeDatabaseUrl:
    def test_heroku_style(self):
        assert normalize_database_url("postgres://u@h/db") == "postgresql+asyncpg://u@h/db"

    def test_libpq_style(self):
        assert normalize_database_url("postgresql://u@h/db") == "postgresql+asyncpg://u@h/db"

    def test_asyncpg_untouched(self):
        url = "postgresql+asyncpg://u@h/db"
        assert normalize_database_url(url) == url
