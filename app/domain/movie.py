"""
app/domain/movie.py

Domain models used by the movie CSV import flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

# Row number used for errors that cannot be attributed to one data row.
BATCH_LEVEL_ROW = -1


@dataclass(frozen=True)
class ProductionCompany:
    """
    One production company entry; ``id`` is kept only when the source had one.
    """

    name: str
    id: Any = None

    def to_json(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name}
        if self.id is not None:
            payload["id"] = self.id
        return payload


@dataclass(frozen=True)
class CastMember:
    name: str

    def to_json(self) -> dict[str, Any]:
        return {"name": self.name}


@dataclass(frozen=True)
class MovieRecord:
    """
    Normalized movie record prepared for persistence.
    """

    id: str
    title: str
    vote_average: float
    vote_count: int
    status: str
    release_date: date | None
    revenue: int
    budget: int
    original_title: str
    runtime: int | None = None
    imdb_id: str | None = None
    original_language: str | None = None
    overview: str | None = None
    popularity: float | None = None
    tagline: str | None = None
    imdb_rating: float | None = None
    imdb_votes: int | None = None
    poster_path: str | None = None
    genres: tuple[str, ...] = ()
    production_companies: tuple[ProductionCompany, ...] = ()
    production_countries: tuple[str, ...] = ()
    spoken_languages: tuple[str, ...] = ()
    cast: tuple[str, ...] = ()
    cast_members: tuple[CastMember, ...] = ()
    director: tuple[str, ...] = ()
    director_of_photography: tuple[str, ...] = ()
    writers: tuple[str, ...] = ()
    producers: tuple[str, ...] = ()
    music_composer: tuple[str, ...] = ()


@dataclass(frozen=True)
class RowError:
    """
    One row-level (or batch-level, ``row_number == -1``) import error.
    """

    row_number: int
    message: str
    record_id: str | None = None


@dataclass(frozen=True)
class ImportSummary:
    """
    End-of-run import summary.
    """

    success: bool
    processed_count: int
    error_count: int
    elapsed_ms: int
    sample_errors: tuple[RowError, ...] = field(default_factory=tuple)
    interrupted: bool = False
