"""
app/schemas package marker.
"""

from app.schemas.movie_import import MovieImportErrorResponse, MovieImportSummaryResponse

__all__ = [
    "MovieImportErrorResponse",
    "MovieImportSummaryResponse",
]
