from __future__ import annotations

from app.domain.movie import ImportSummary, RowError
from app.schemas.movie_import import MovieImportSummaryResponse


def test_summary_serializes_in_camel_case() -> None:
    summary = ImportSummary(
        success=True,
        processed_count=2,
        error_count=1,
        elapsed_ms=15,
        sample_errors=(RowError(row_number=2, message="Missing required field(s): id."),),
    )

    payload = MovieImportSummaryResponse.from_summary(summary).model_dump(by_alias=True)

    assert payload == {
        "success": True,
        "processedCount": 2,
        "errorCount": 1,
        "elapsedMillis": 15,
        "interrupted": False,
        "sampleErrors": [
            {"rowNumber": 2, "message": "Missing required field(s): id.", "recordId": None}
        ],
    }


def test_batch_level_errors_are_allowed() -> None:
    summary = ImportSummary(
        success=True,
        processed_count=5,
        error_count=1,
        elapsed_ms=0,
        sample_errors=(RowError(row_number=-1, message="Input stream interrupted"),),
        interrupted=True,
    )

    response = MovieImportSummaryResponse.from_summary(summary)

    assert response.sample_errors[0].row_number == -1
    assert response.interrupted is True


def test_accepts_field_names_and_aliases() -> None:
    by_name = MovieImportSummaryResponse(success=False, processed_count=0, error_count=0, elapsed_millis=1)
    by_alias = MovieImportSummaryResponse.model_validate(
        {"success": False, "processedCount": 0, "errorCount": 0, "elapsedMillis": 1}
    )

    assert by_name == by_alias
