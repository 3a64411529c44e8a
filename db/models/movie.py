"""
db/models/movie.py

Movie table targeted by the CSV import upsert.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import BigInteger, Date, Float, Index, Integer, Text, text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

_EMPTY_TEXT_ARRAY = text("'{}'::text[]")


def _text_array() -> Mapped[list[str]]:
    return mapped_column(ARRAY(Text), nullable=False, server_default=_EMPTY_TEXT_ARRAY)


class Movie(TimestampMixin, Base):
    __tablename__ = "movies"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    vote_average: Mapped[float] = mapped_column(Float, nullable=False)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    release_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    revenue: Mapped[int] = mapped_column(BigInteger, nullable=False)
    runtime: Mapped[int | None] = mapped_column(Integer, nullable=True)
    budget: Mapped[int] = mapped_column(BigInteger, nullable=False)
    imdb_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_language: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_title: Mapped[str] = mapped_column(Text, nullable=False)
    overview: Mapped[str | None] = mapped_column(Text, nullable=True)
    popularity: Mapped[float | None] = mapped_column(Float, nullable=True)
    tagline: Mapped[str | None] = mapped_column(Text, nullable=True)
    genres: Mapped[list[str]] = _text_array()
    production_companies: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'[]'::jsonb"),
        comment="List of {name, id?} objects",
    )
    production_countries: Mapped[list[str]] = _text_array()
    spoken_languages: Mapped[list[str]] = _text_array()
    cast: Mapped[list[str]] = _text_array()
    director: Mapped[list[str]] = _text_array()
    director_of_photography: Mapped[list[str]] = _text_array()
    writers: Mapped[list[str]] = _text_array()
    producers: Mapped[list[str]] = _text_array()
    music_composer: Mapped[list[str]] = _text_array()
    imdb_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    imdb_votes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    poster_path: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_movies_release_date", "release_date"),
        Index("ix_movies_vote_average", "vote_average"),
        Index("ix_movies_genres", "genres", postgresql_using="gin"),
    )
