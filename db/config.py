"""
Shared environment-driven database configuration helpers.
"""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import quote_plus


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if line.startswith("export "):
                line = line[len("export ") :].strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def normalize_postgres_url(url: str) -> str:
    """
    Normalize postgres URLs to SQLAlchemy's psycopg (v3) driver form.
    """

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix) :]
    return url


def _url_from_parts() -> str | None:
    host = os.getenv("POSTGRES_HOST", "").strip()
    database = os.getenv("POSTGRES_DB", "").strip()
    if not host or not database:
        return None

    user = quote_plus(os.getenv("POSTGRES_USER", "postgres").strip())
    password = os.getenv("POSTGRES_PASSWORD", "")
    port = os.getenv("POSTGRES_PORT", "5432").strip() or "5432"
    credentials = f"{user}:{quote_plus(password)}" if password else user
    return f"postgresql+psycopg://{credentials}@{host}:{port}/{database}"


def resolve_database_url() -> str:
    """
    Resolve the movie database URL.

    Priority:
    1) DATABASE_URL
    2) POSTGRES_HOST / POSTGRES_PORT / POSTGRES_USER / POSTGRES_PASSWORD / POSTGRES_DB
    """

    load_env_files()

    direct_url = os.getenv("DATABASE_URL", "").strip()
    if direct_url:
        return normalize_postgres_url(direct_url)

    assembled = _url_from_parts()
    if assembled:
        return assembled

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL, or POSTGRES_HOST and "
        "POSTGRES_DB (with optional POSTGRES_USER / POSTGRES_PASSWORD / POSTGRES_PORT)."
    )
