"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.

    Unlike the other helpers the value is not stripped, since a single space
    or tab is a legitimate CSV delimiter.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


@dataclass(frozen=True)
class MovieImportSettings:
    """
    Runtime settings for the streaming movie import pipeline.
    """

    batch_size: int = 1000
    max_attempts: int = 3
    retry_delay_seconds: float = 0.5
    keepalive_interval_seconds: float = 30.0
    progress_log_interval_seconds: float = 5.0
    max_sample_errors: int = 10
    max_retained_errors: int = 1000
    log_row_errors: bool = True


@dataclass(frozen=True)
class CSVDialectSettings:
    """
    Dialect and read-buffer settings for the CSV decoder.
    """

    delimiter: str = ","
    quotechar: str = '"'
    escapechar: str | None = "\\"
    encoding: str = "utf-8-sig"
    read_chunk_size: int = 64 * 1024


@lru_cache(maxsize=1)
def get_movie_import_settings() -> MovieImportSettings:
    """
    Return cached movie import settings from environment variables.
    """

    return MovieImportSettings(
        batch_size=max(1, _get_int_env("MOVIE_IMPORT_BATCH_SIZE", 1000)),
        max_attempts=max(1, _get_int_env("MOVIE_IMPORT_MAX_ATTEMPTS", 3)),
        retry_delay_seconds=max(0.0, _get_float_env("MOVIE_IMPORT_RETRY_DELAY_SECONDS", 0.5)),
        keepalive_interval_seconds=_get_float_env("MOVIE_IMPORT_KEEPALIVE_SECONDS", 30.0),
        progress_log_interval_seconds=max(
            0.0, _get_float_env("MOVIE_IMPORT_PROGRESS_LOG_SECONDS", 5.0)
        ),
        max_sample_errors=max(0, _get_int_env("MOVIE_IMPORT_SAMPLE_ERRORS", 10)),
        max_retained_errors=max(1, _get_int_env("MOVIE_IMPORT_MAX_RETAINED_ERRORS", 1000)),
        log_row_errors=_get_bool_env("MOVIE_IMPORT_LOG_ROW_ERRORS", True),
    )


@lru_cache(maxsize=1)
def get_csv_dialect_settings() -> CSVDialectSettings:
    """
    Return cached CSV dialect settings from environment variables.
    """

    escapechar = _get_str_env("CSV_ESCAPECHAR", "\\")
    return CSVDialectSettings(
        delimiter=_get_str_env("CSV_DELIMITER", ",")[:1],
        quotechar=_get_str_env("CSV_QUOTECHAR", '"')[:1],
        escapechar=None if escapechar.lower() == "none" else escapechar[:1],
        encoding=_get_str_env("CSV_ENCODING", "utf-8-sig").strip(),
        read_chunk_size=max(1024, _get_int_env("CSV_READ_CHUNK_SIZE", 64 * 1024)),
    )
