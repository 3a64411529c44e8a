"""
app/validators/header_validator.py

Pre-flight header check for movie CSV uploads.

The whole payload is buffered before the header row is parsed: this check
runs before ingestion on streams that may not be re-readable, so it keeps a
replayable copy instead of consuming the caller's stream.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import Any

from app.config import CSVDialectSettings
from app.parsing.csv_decoder import is_blank_record, make_reader, normalize_header

logger = logging.getLogger(__name__)

REQUIRED_HEADERS: tuple[str, ...] = (
    "id",
    "title",
    "vote_average",
    "vote_count",
    "status",
    "release_date",
    "revenue",
    "runtime",
    "budget",
    "imdb_id",
    "original_language",
    "original_title",
    "overview",
    "popularity",
    "tagline",
    "genres",
    "production_companies",
    "production_countries",
    "spoken_languages",
    "cast",
    "director",
    "director_of_photography",
    "writers",
    "producers",
    "music_composer",
    "imdb_rating",
    "imdb_votes",
    "poster_path",
)

EMPTY_FILE_MESSAGE = "CSV file is empty."
MALFORMED_FILE_MESSAGE = "CSV file is empty or malformed."


class CSVHeaderValidator:
    """
    Checks that a CSV header row contains every required column.
    """

    def __init__(
        self,
        *,
        required_headers: tuple[str, ...] = REQUIRED_HEADERS,
        encoding: str = "utf-8-sig",
        delimiter: str = ",",
        quotechar: str = '"',
        escapechar: str | None = "\\",
    ) -> None:
        self._required_headers = required_headers
        self._encoding = encoding
        self._delimiter = delimiter
        self._quotechar = quotechar
        self._escapechar = escapechar

    @classmethod
    def from_settings(
        cls,
        settings: CSVDialectSettings,
        *,
        required_headers: tuple[str, ...] = REQUIRED_HEADERS,
    ) -> CSVHeaderValidator:
        return cls(
            required_headers=required_headers,
            encoding=settings.encoding,
            delimiter=settings.delimiter,
            quotechar=settings.quotechar,
            escapechar=settings.escapechar,
        )

    def validate(self, stream: Any) -> str | None:
        """
        Read ``stream`` fully and validate its header row.

        Returns None when headers are valid, otherwise a readable message.
        """

        try:
            payload = stream.read()
        except (OSError, ValueError) as exc:
            logger.error("CSV header validation could not read stream: %s", exc)
            return f"CSV file could not be read: {exc}"
        return self.validate_bytes(payload)

    def validate_bytes(self, payload: bytes | str) -> str | None:
        """
        Validate the header row of an in-memory CSV payload.
        """

        if not payload:
            return EMPTY_FILE_MESSAGE

        try:
            text = payload.decode(self._encoding) if isinstance(payload, bytes) else payload
            headers = self._read_header_row(text)
        except (csv.Error, UnicodeDecodeError) as exc:
            logger.error("CSV header parse error: %s", exc)
            return f"CSV file could not be parsed: {exc}"

        if not headers:
            return MALFORMED_FILE_MESSAGE

        present = set(headers)
        missing = [header for header in self._required_headers if header not in present]
        if missing:
            return f"Missing required columns: {', '.join(missing)}"

        return None

    def _read_header_row(self, text: str) -> list[str]:
        reader = make_reader(
            io.StringIO(text, newline=""),
            delimiter=self._delimiter,
            quotechar=self._quotechar,
            escapechar=self._escapechar,
        )
        for record in reader:
            if not is_blank_record(record):
                return [normalize_header(value) for value in record]
        return []
