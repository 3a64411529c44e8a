"""
app/parsing package marker.
"""

from app.parsing.csv_decoder import CSVStreamDecoder, CSVStreamError, DecodedRow

__all__ = [
    "CSVStreamDecoder",
    "CSVStreamError",
    "DecodedRow",
]
