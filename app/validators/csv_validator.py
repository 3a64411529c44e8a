"""
app/validators/csv_validator.py

Row-level validation and type coercion for movie CSV imports.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Any, Mapping

from app.domain.movie import MovieRecord, RowError
from app.mappers.field_parsers import (
    parse_cast,
    parse_cast_names,
    parse_production_companies,
    parse_string_list,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = ("id", "title")

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
)

LIST_FIELDS: tuple[str, ...] = (
    "genres",
    "production_countries",
    "spoken_languages",
    "director",
    "director_of_photography",
    "writers",
    "producers",
    "music_composer",
)


class MovieRowValidator:
    """
    Validates one raw CSV row and coerces it into a ``MovieRecord``.

    Only ``id`` and ``title`` are required. Every other field is coerced with
    a documented default, so malformed numbers, dates or lists never fail a
    row on their own.
    """

    def validate_row(
        self,
        raw_row: Mapping[str, str | None],
        *,
        row_number: int,
    ) -> tuple[MovieRecord | None, list[RowError]]:
        """
        Validate and coerce one decoded row.
        """

        missing = [name for name in REQUIRED_FIELDS if self._is_blank(raw_row.get(name))]
        if missing:
            return None, [
                RowError(
                    row_number=row_number,
                    message=f"Missing required field(s): {', '.join(missing)}.",
                    record_id=self._parse_optional_string(raw_row.get("id")),
                )
            ]

        movie_id = str(raw_row["id"]).strip()
        title = str(raw_row["title"]).strip()
        cast_value = raw_row.get("cast")

        lists = {name: tuple(parse_string_list(raw_row.get(name))) for name in LIST_FIELDS}

        record = MovieRecord(
            id=movie_id,
            title=title,
            vote_average=self._parse_float(raw_row.get("vote_average"), default=0.0),
            vote_count=self._parse_int(raw_row.get("vote_count"), default=0),
            status=self._parse_optional_string(raw_row.get("status")) or "",
            release_date=self._parse_date(raw_row.get("release_date"), movie_id=movie_id),
            revenue=self._parse_money(raw_row.get("revenue")),
            budget=self._parse_money(raw_row.get("budget")),
            original_title=self._parse_optional_string(raw_row.get("original_title")) or title,
            runtime=self._parse_int(raw_row.get("runtime"), default=None),
            imdb_id=self._parse_optional_string(raw_row.get("imdb_id")),
            original_language=self._parse_optional_string(raw_row.get("original_language")),
            overview=self._parse_optional_string(raw_row.get("overview")),
            popularity=self._parse_float(raw_row.get("popularity"), default=None),
            tagline=self._parse_optional_string(raw_row.get("tagline")),
            imdb_rating=self._parse_float(raw_row.get("imdb_rating"), default=None),
            imdb_votes=self._parse_int(raw_row.get("imdb_votes"), default=None),
            poster_path=self._parse_optional_string(raw_row.get("poster_path")),
            production_companies=tuple(
                parse_production_companies(raw_row.get("production_companies"))
            ),
            cast=tuple(parse_cast_names(cast_value)),
            cast_members=tuple(parse_cast(cast_value)),
            **lists,
        )
        return record, []

    def _parse_optional_string(self, value: Any) -> str | None:
        if self._is_blank(value):
            return None
        return str(value).strip()

    def _parse_float(self, value: Any, *, default: float | None) -> float | None:
        if self._is_blank(value):
            return default
        try:
            parsed = float(str(value).strip())
        except ValueError:
            return default
        if not math.isfinite(parsed):
            return default
        return parsed

    def _parse_int(self, value: Any, *, default: int | None) -> int | None:
        if self._is_blank(value):
            return default
        raw = str(value).strip()
        try:
            return int(raw)
        except ValueError:
            pass
        # Exports written through float columns carry values like "120.0".
        parsed = self._parse_float(raw, default=None)
        if parsed is None:
            return default
        return int(parsed)

    def _parse_money(self, value: Any) -> int:
        parsed = self._parse_float(value, default=None)
        if parsed is None or parsed < 0:
            return 0
        return int(parsed)

    def _parse_date(self, value: Any, *, movie_id: str) -> date | None:
        if self._is_blank(value):
            return None

        raw = str(value).strip()
        try:
            return date.fromisoformat(raw[:10])
        except ValueError:
            pass

        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(raw[:10], fmt).date()
            except ValueError:
                continue

        logger.debug("Unparseable release_date dropped id=%s value=%r", movie_id, raw)
        return None

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        return str(value).strip() == ""
