"""
app/schemas/movie_import.py

Response schemas for movie CSV imports.

Field names serialize in camelCase for callers that consume the summary as
JSON.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.domain.movie import ImportSummary, RowError


class MovieImportErrorResponse(BaseModel):
    """
    Response model for one row-level or batch-level import error.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    row_number: int = Field(..., ge=-1)
    message: str
    record_id: str | None = None

    @classmethod
    def from_error(cls, error: RowError) -> MovieImportErrorResponse:
        return cls(
            row_number=error.row_number,
            message=error.message,
            record_id=error.record_id,
        )


class MovieImportSummaryResponse(BaseModel):
    """
    Response model for a completed movie import.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    processed_count: int = Field(..., ge=0)
    error_count: int = Field(..., ge=0)
    elapsed_millis: int = Field(..., ge=0)
    interrupted: bool = False
    sample_errors: list[MovieImportErrorResponse] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: ImportSummary) -> MovieImportSummaryResponse:
        return cls(
            success=summary.success,
            processed_count=summary.processed_count,
            error_count=summary.error_count,
            elapsed_millis=summary.elapsed_ms,
            interrupted=summary.interrupted,
            sample_errors=[MovieImportErrorResponse.from_error(error) for error in summary.sample_errors],
        )
