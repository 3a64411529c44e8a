"""
tests/test_csv_decoder.py

Pytest unit tests for CSVStreamDecoder.

Coverage
--------
- Header handling (BOM, quoting, empty input)
- Row numbering over data rows, blank lines skipped
- Malformed rows reported and skipped without stopping the stream
- Multi-line quoted fields and multi-byte characters across chunk edges
- Read and decode failures surfaced as CSVStreamError
"""

from __future__ import annotations

import io

import pytest

from app.config import CSVDialectSettings
from app.parsing.csv_decoder import CSVStreamDecoder, CSVStreamError, normalize_header


class _FailingStream:
    """Returns ``payload`` on the first read, then fails. ``None`` fails at once."""

    def __init__(self, payload: bytes | None) -> None:
        self._payload = payload

    def read(self, size: int = -1) -> bytes:
        if self._payload is None:
            raise OSError("connection reset by peer")
        payload, self._payload = self._payload, None
        return payload


def _collect(decoder: CSVStreamDecoder, payload: bytes) -> list[tuple[int, dict[str, str]]]:
    return [(row.row_number, row.values) for row in decoder.iter_rows(io.BytesIO(payload))]


# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------


class TestHeaders:
    def test_bom_is_stripped_from_first_header(self) -> None:
        rows = _collect(CSVStreamDecoder(), b"\xef\xbb\xbfid,title\n1,Heat\n")

        assert rows == [(1, {"id": "1", "title": "Heat"})]

    def test_header_names_are_normalized(self) -> None:
        assert normalize_header(' "title" ') == "title"
        assert normalize_header("'id'") == "id"

    def test_leading_blank_lines_before_header(self) -> None:
        rows = _collect(CSVStreamDecoder(), b"\n\nid,title\n1,Heat\n")

        assert rows == [(1, {"id": "1", "title": "Heat"})]

    def test_empty_stream_yields_nothing(self) -> None:
        assert _collect(CSVStreamDecoder(), b"") == []


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------


class TestRows:
    def test_row_numbers_skip_blank_lines(self) -> None:
        rows = _collect(CSVStreamDecoder(), b"id,title\n1,Heat\n\n2,Alien\n")

        assert [number for number, _ in rows] == [1, 2]

    def test_values_are_trimmed(self) -> None:
        rows = _collect(CSVStreamDecoder(), b"id,title\n 1 ,  Heat \n")

        assert rows[0][1] == {"id": "1", "title": "Heat"}

    def test_field_count_mismatch_is_reported_and_skipped(self) -> None:
        reported: list[tuple[int, str]] = []
        decoder = CSVStreamDecoder(on_malformed_row=lambda row, message: reported.append((row, message)))

        rows = _collect(decoder, b"id,title\n1,Heat\n2\n3,Alien,extra\n4,Ran\n")

        assert [number for number, _ in rows] == [1, 4]
        assert [number for number, _ in reported] == [2, 3]
        assert reported[0][1] == "Expected 2 fields, found 1."

    def test_parser_error_does_not_stop_the_stream(self) -> None:
        reported: list[int] = []
        decoder = CSVStreamDecoder(on_malformed_row=lambda row, message: reported.append(row))
        oversized = b"x" * 200_000

        rows = _collect(decoder, b"id,title\n1," + oversized + b"\n2,Heat\n")

        assert reported == [1]
        assert rows == [(2, {"id": "2", "title": "Heat"})]

    def test_quoted_field_spanning_lines(self) -> None:
        payload = b'id,title,overview\n1,Heat,"A thief.\nA detective."\n2,Alien,Space\n'

        rows = _collect(CSVStreamDecoder(), payload)

        assert rows[0][1]["overview"] == "A thief.\nA detective."
        assert rows[1][0] == 2

    def test_escaped_quote_and_embedded_delimiter(self) -> None:
        payload = b'id,title\n1,"Crouching Tiger, Hidden Dragon"\n2,"The ""Thing"""\n'

        rows = _collect(CSVStreamDecoder(), payload)

        assert rows[0][1]["title"] == "Crouching Tiger, Hidden Dragon"
        assert rows[1][1]["title"] == 'The "Thing"'

    def test_multibyte_characters_across_small_chunks(self) -> None:
        payload = "id,title\n1,Amélie\n2,千と千尋の神隠し\n".encode("utf-8")
        decoder = CSVStreamDecoder(chunk_size=3)

        rows = _collect(decoder, payload)

        assert [values["title"] for _, values in rows] == ["Amélie", "千と千尋の神隠し"]

    def test_text_streams_are_accepted(self) -> None:
        rows = list(CSVStreamDecoder().iter_rows(io.StringIO("id,title\n1,Heat\n")))

        assert rows[0].values == {"id": "1", "title": "Heat"}

    def test_last_line_without_newline(self) -> None:
        rows = _collect(CSVStreamDecoder(), b"id,title\n1,Heat")

        assert rows == [(1, {"id": "1", "title": "Heat"})]

    def test_carriage_return_line_endings(self) -> None:
        rows = _collect(CSVStreamDecoder(), b"id,title\r1,Heat\r2,Alien\r")

        assert rows == [
            (1, {"id": "1", "title": "Heat"}),
            (2, {"id": "2", "title": "Alien"}),
        ]

    @pytest.mark.parametrize("chunk_size", [1, 9, 64])
    def test_crlf_split_across_chunks(self, chunk_size: int) -> None:
        payload = b'id,title,overview\r\n1,Heat,"A thief.\r\nA detective."\r\n2,Alien,Space\r\n'

        rows = _collect(CSVStreamDecoder(chunk_size=chunk_size), payload)

        assert [number for number, _ in rows] == [1, 2]
        assert rows[0][1]["overview"] == "A thief.\r\nA detective."
        assert rows[1][1] == {"id": "2", "title": "Alien", "overview": "Space"}

    def test_dialect_from_settings(self) -> None:
        settings = CSVDialectSettings(delimiter=";", read_chunk_size=16)
        decoder = CSVStreamDecoder.from_settings(settings)

        rows = _collect(decoder, b"id;title\n1;Heat, the movie\n")

        assert rows == [(1, {"id": "1", "title": "Heat, the movie"})]


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    def test_read_failure_after_rows_raises(self) -> None:
        decoder = CSVStreamDecoder()
        seen: list[int] = []

        with pytest.raises(CSVStreamError, match="read failed"):
            for row in decoder.iter_rows(_FailingStream(b"id,title\n1,Heat\n2,Ali")):
                seen.append(row.row_number)

        assert seen == [1]

    def test_read_failure_before_header_raises(self) -> None:
        decoder = CSVStreamDecoder()

        with pytest.raises(CSVStreamError):
            list(decoder.iter_rows(_FailingStream(None)))

    def test_invalid_encoding_raises(self) -> None:
        with pytest.raises(CSVStreamError, match="encoded"):
            _collect(CSVStreamDecoder(), b"id,title\n1,\xff\xfe\n")
