"""
app/validators package marker.
"""

from app.validators.csv_validator import MovieRowValidator
from app.validators.header_validator import REQUIRED_HEADERS, CSVHeaderValidator

__all__ = [
    "CSVHeaderValidator",
    "MovieRowValidator",
    "REQUIRED_HEADERS",
]
