"""
app/services package marker.
"""

from app.services.batch_committer import BatchCommitter, ImportErrorLog
from app.services.keepalive import StorageKeepAlive
from app.services.movie_import_service import (
    CSVHeaderValidationError,
    ImportState,
    MovieImportError,
    MovieImportRun,
    MovieImportService,
    get_movie_import_service,
)

__all__ = [
    "BatchCommitter",
    "CSVHeaderValidationError",
    "ImportErrorLog",
    "ImportState",
    "MovieImportError",
    "MovieImportRun",
    "MovieImportService",
    "StorageKeepAlive",
    "get_movie_import_service",
]
