"""
tests/test_config.py

Environment-driven settings for the import pipeline and the database URL.
"""

from __future__ import annotations

import pytest

from app.config import get_csv_dialect_settings, get_movie_import_settings
from db.config import normalize_postgres_url, resolve_database_url


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_movie_import_settings.cache_clear()
    get_csv_dialect_settings.cache_clear()
    yield
    get_movie_import_settings.cache_clear()
    get_csv_dialect_settings.cache_clear()


class TestMovieImportSettings:
    def test_defaults(self, monkeypatch) -> None:
        for name in (
            "MOVIE_IMPORT_BATCH_SIZE",
            "MOVIE_IMPORT_MAX_ATTEMPTS",
            "MOVIE_IMPORT_KEEPALIVE_SECONDS",
            "MOVIE_IMPORT_SAMPLE_ERRORS",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = get_movie_import_settings()

        assert settings.batch_size == 1000
        assert settings.max_attempts == 3
        assert settings.keepalive_interval_seconds == 30.0
        assert settings.max_sample_errors == 10

    def test_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("MOVIE_IMPORT_BATCH_SIZE", "250")
        monkeypatch.setenv("MOVIE_IMPORT_RETRY_DELAY_SECONDS", "0.1")
        monkeypatch.setenv("MOVIE_IMPORT_KEEPALIVE_SECONDS", "0")
        monkeypatch.setenv("MOVIE_IMPORT_LOG_ROW_ERRORS", "false")

        settings = get_movie_import_settings()

        assert settings.batch_size == 250
        assert settings.retry_delay_seconds == 0.1
        assert settings.keepalive_interval_seconds == 0.0
        assert settings.log_row_errors is False

    def test_invalid_and_out_of_range_values_fall_back(self, monkeypatch) -> None:
        monkeypatch.setenv("MOVIE_IMPORT_BATCH_SIZE", "0")
        monkeypatch.setenv("MOVIE_IMPORT_MAX_ATTEMPTS", "many")

        settings = get_movie_import_settings()

        assert settings.batch_size == 1
        assert settings.max_attempts == 3


class TestCSVDialectSettings:
    def test_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("CSV_DELIMITER", ";")
        monkeypatch.setenv("CSV_ESCAPECHAR", "none")
        monkeypatch.setenv("CSV_ENCODING", "latin-1")

        settings = get_csv_dialect_settings()

        assert settings.delimiter == ";"
        assert settings.escapechar is None
        assert settings.encoding == "latin-1"

    def test_tab_delimiter_is_kept(self, monkeypatch) -> None:
        monkeypatch.setenv("CSV_DELIMITER", "\t")

        assert get_csv_dialect_settings().delimiter == "\t"


class TestDatabaseURL:
    def test_normalizes_driver(self) -> None:
        assert normalize_postgres_url("postgres://u@h/db") == "postgresql+psycopg://u@h/db"
        assert normalize_postgres_url("postgresql://u@h/db") == "postgresql+psycopg://u@h/db"
        assert normalize_postgres_url("postgresql+psycopg://u@h/db") == "postgresql+psycopg://u@h/db"

    def test_database_url_wins(self, monkeypatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgres://app@db:5432/movies")
        monkeypatch.setenv("POSTGRES_HOST", "ignored")

        assert resolve_database_url() == "postgresql+psycopg://app@db:5432/movies"

    def test_url_from_parts_quotes_password(self, monkeypatch) -> None:
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("POSTGRES_HOST", "db")
        monkeypatch.setenv("POSTGRES_DB", "movies")
        monkeypatch.setenv("POSTGRES_USER", "app")
        monkeypatch.setenv("POSTGRES_PASSWORD", "p@ss")
        monkeypatch.delenv("POSTGRES_PORT", raising=False)

        assert resolve_database_url() == "postgresql+psycopg://app:p%40ss@db:5432/movies"

    def test_missing_configuration(self, monkeypatch) -> None:
        for name in ("DATABASE_URL", "POSTGRES_HOST", "POSTGRES_DB"):
            monkeypatch.delenv(name, raising=False)

        with pytest.raises(RuntimeError, match="No database URL configured"):
            resolve_database_url()
