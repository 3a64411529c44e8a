"""
app/repositories package marker.
"""

from app.repositories.movie_repository import MovieRepository, MovieStorageError, MovieStore

__all__ = [
    "MovieRepository",
    "MovieStorageError",
    "MovieStore",
]
