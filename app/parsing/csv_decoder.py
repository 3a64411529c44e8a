"""
app/parsing/csv_decoder.py

Incremental CSV decoding over a byte stream.

The decoder reads fixed-size chunks, decodes them with an incremental codec
and hands complete lines to the stdlib ``csv`` reader, so memory stays
bounded by the chunk size plus the longest record regardless of file size.
"""

from __future__ import annotations

import codecs
import csv
import logging
import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from app.config import CSVDialectSettings

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

_LINE_END_RE = re.compile(r"\r\n|\r|\n")

MalformedRowHandler = Callable[[int, str], None]


class CSVStreamError(RuntimeError):
    """
    Raised when the input stream cannot be read or decoded, or when its
    header row cannot be parsed.
    """


@dataclass(frozen=True)
class DecodedRow:
    """
    One data row keyed by header name; ``row_number`` is 1-based over data rows.
    """

    row_number: int
    values: dict[str, str]


class CSVStreamDecoder:
    """
    Single-pass, lazy CSV row decoder.

    The first non-empty record is the header row. Malformed data records
    (parser errors or a field count that differs from the header) are
    skipped and reported through ``on_malformed_row``; decoding continues
    with the next record.
    """

    def __init__(
        self,
        *,
        delimiter: str = ",",
        quotechar: str = '"',
        escapechar: str | None = "\\",
        encoding: str = "utf-8-sig",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_malformed_row: MalformedRowHandler | None = None,
    ) -> None:
        self._delimiter = delimiter
        self._quotechar = quotechar
        self._escapechar = escapechar
        self._encoding = encoding
        self._chunk_size = max(1, chunk_size)
        self._on_malformed_row = on_malformed_row

    @classmethod
    def from_settings(
        cls,
        settings: CSVDialectSettings,
        *,
        on_malformed_row: MalformedRowHandler | None = None,
    ) -> CSVStreamDecoder:
        return cls(
            delimiter=settings.delimiter,
            quotechar=settings.quotechar,
            escapechar=settings.escapechar,
            encoding=settings.encoding,
            chunk_size=settings.read_chunk_size,
            on_malformed_row=on_malformed_row,
        )

    def iter_rows(self, stream: Any) -> Iterator[DecodedRow]:
        """
        Yield decoded rows from ``stream`` (any object with ``read(n)``).

        Raises:
            CSVStreamError: if reading or decoding the stream fails, or if the
                header row cannot be parsed.
        """

        reader = make_reader(
            self._iter_lines(stream),
            delimiter=self._delimiter,
            quotechar=self._quotechar,
            escapechar=self._escapechar,
        )

        headers = self._read_headers(reader)
        if headers is None:
            logger.warning("CSV stream contained no header row")
            return

        row_number = 0
        while True:
            try:
                values = next(reader)
            except StopIteration:
                return
            except csv.Error as exc:
                row_number += 1
                self._report_malformed(row_number, f"Malformed CSV record: {exc}")
                continue

            if is_blank_record(values):
                continue

            row_number += 1
            if len(values) != len(headers):
                self._report_malformed(
                    row_number,
                    f"Expected {len(headers)} fields, found {len(values)}.",
                )
                continue

            yield DecodedRow(
                row_number=row_number,
                values={header: value.strip() for header, value in zip(headers, values)},
            )

    def _read_headers(self, reader: Iterator[list[str]]) -> list[str] | None:
        while True:
            try:
                values = next(reader)
            except StopIteration:
                return None
            except csv.Error as exc:
                raise CSVStreamError(f"CSV header row could not be parsed: {exc}") from exc

            if is_blank_record(values):
                continue

            headers = [normalize_header(value) for value in values]
            logger.info("CSV headers: %s", ", ".join(headers))
            return headers

    def _iter_lines(self, stream: Any) -> Iterator[str]:
        decoder = codecs.getincrementaldecoder(self._encoding)()
        pending = ""

        while True:
            try:
                chunk = stream.read(self._chunk_size)
            except (OSError, ValueError) as exc:
                raise CSVStreamError(f"Input stream read failed: {exc}") from exc

            final = not chunk
            if isinstance(chunk, str):
                text = chunk
            else:
                try:
                    text = decoder.decode(chunk or b"", final=final)
                except UnicodeDecodeError as exc:
                    raise CSVStreamError(f"CSV must be {self._encoding} encoded: {exc}") from exc

            if text:
                buffer = pending + text
                start = 0
                for match in _LINE_END_RE.finditer(buffer):
                    # A trailing CR may be the first half of a CRLF split across chunks.
                    if not final and match.end() == len(buffer) and match.group() == "\r":
                        break
                    yield buffer[start : match.end()]
                    start = match.end()
                pending = buffer[start:]

            if final:
                if pending:
                    yield pending
                return

    def _report_malformed(self, row_number: int, message: str) -> None:
        logger.warning("Skipping malformed CSV row=%s: %s", row_number, message)
        if self._on_malformed_row is not None:
            self._on_malformed_row(row_number, message)


def normalize_header(value: str) -> str:
    """
    Strip whitespace and one pair of surrounding quotes from a header name.
    """

    name = value.strip()
    if name[:1] in {'"', "'"}:
        name = name[1:]
    if name[-1:] in {'"', "'"}:
        name = name[:-1]
    return name.strip()


def is_blank_record(values: list[str]) -> bool:
    """
    A record with no fields or a single whitespace-only field is a blank line.
    """

    return not values or (len(values) == 1 and not values[0].strip())


def make_reader(
    lines: Iterable[str],
    *,
    delimiter: str,
    quotechar: str,
    escapechar: str | None,
) -> Iterator[list[str]]:
    return csv.reader(
        lines,
        delimiter=delimiter,
        quotechar=quotechar,
        escapechar=escapechar,
        doublequote=True,
        strict=False,
    )
