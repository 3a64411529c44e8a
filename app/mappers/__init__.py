"""
app/mappers package marker.
"""

from app.mappers.field_parsers import (
    classify_field,
    parse_cast,
    parse_cast_names,
    parse_production_companies,
    parse_string_list,
)

__all__ = [
    "classify_field",
    "parse_cast",
    "parse_cast_names",
    "parse_production_companies",
    "parse_string_list",
]
