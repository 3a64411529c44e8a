"""
Run a movie CSV import from CLI.

Exit codes: 0 on success, 1 when the import fails or stores nothing,
2 when the file is missing or its headers are invalid.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace

from app.config import get_csv_dialect_settings, get_movie_import_settings
from app.logging_utils import configure_logging
from app.repositories.movie_repository import MovieRepository
from app.schemas.movie_import import MovieImportSummaryResponse
from app.services.movie_import_service import (
    CSVHeaderValidationError,
    MovieImportError,
    MovieImportService,
)
from db.session import SessionLocal, dispose_engine

logger = logging.getLogger("scripts.import_movies")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import a movie CSV file into PostgreSQL.")
    parser.add_argument("path", help="Path to the CSV file.")
    parser.add_argument(
        "--batch-size",
        dest="batch_size",
        type=int,
        default=None,
        help="Override MOVIE_IMPORT_BATCH_SIZE for this run.",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default=None,
        help="Override LOG_LEVEL for this run.",
    )
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    settings = get_movie_import_settings()
    if args.batch_size is not None:
        settings = replace(settings, batch_size=max(1, args.batch_size))

    service = MovieImportService(
        store_factory=lambda: MovieRepository(SessionLocal),
        settings=settings,
        dialect=get_csv_dialect_settings(),
    )

    try:
        with open(args.path, "rb") as stream:
            summary = service.import_csv(stream)
    except FileNotFoundError:
        print(f"File not found: {args.path}", file=sys.stderr)
        return 2
    except CSVHeaderValidationError as exc:
        print(f"Invalid CSV headers: {exc}", file=sys.stderr)
        return 2
    except MovieImportError as exc:
        logger.error("Movie import failed: %s", exc)
        print(f"Import failed: {exc}", file=sys.stderr)
        return 1
    finally:
        dispose_engine()

    payload = MovieImportSummaryResponse.from_summary(summary).model_dump(by_alias=True)
    print(json.dumps(payload, indent=2))
    return 0 if summary.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
