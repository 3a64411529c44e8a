"""
app/domain package marker.
"""

from app.domain.movie import (
    BATCH_LEVEL_ROW,
    CastMember,
    ImportSummary,
    MovieRecord,
    ProductionCompany,
    RowError,
)

__all__ = [
    "BATCH_LEVEL_ROW",
    "CastMember",
    "ImportSummary",
    "MovieRecord",
    "ProductionCompany",
    "RowError",
]
