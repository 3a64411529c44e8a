"""
app/mappers/field_parsers.py

Tolerant parsers for multi-valued movie CSV fields.

Exports of this data mix several conventions for the same logical field:
JSON arrays, comma lists, pipe lists and a ``[Name]`` shorthand. The parsers
below resolve the raw value once into a small tagged variant and dispatch on
it. None of them raises; the worst case is a single entry wrapping the raw
text.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Union

from app.domain.movie import CastMember, ProductionCompany

logger = logging.getLogger(__name__)

_BRACKETED_NAME_RE = re.compile(r"^\[([\w\s&.-]+)\]$")
_COMMA_SPLIT_RE = re.compile(r",\s*")
# Entry boundary in "Name as Role, Other as Role": a comma after a non-space
# character and before an uppercase letter.
_CAST_ENTRY_SPLIT_RE = re.compile(r"(?<=\S),\s*(?=[A-Z])")
_CAST_ROLE_SPLIT_RE = re.compile(r" as ", re.IGNORECASE)

UNKNOWN_COMPANY = "Unknown"
UNKNOWN_ACTOR = "Unknown Actor"


# ---------------------------------------------------------------------------
# Tagged input variant
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RawText:
    text: str


@dataclass(frozen=True)
class JsonArray:
    items: tuple[Any, ...]


@dataclass(frozen=True)
class JsonObject:
    fields: dict[str, Any]


FieldInput = Union[RawText, JsonArray, JsonObject]


def classify_field(value: Any) -> FieldInput | None:
    """
    Resolve a raw field value into its variant; ``None`` means empty.
    """

    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
        return RawText(value)
    if isinstance(value, (list, tuple)):
        return JsonArray(tuple(value))
    if isinstance(value, dict):
        return JsonObject(value)
    return RawText(str(value))


def _looks_like_array(text: str) -> bool:
    return text.startswith("[") and text.endswith("]")


def _split_commas(text: str) -> list[str]:
    return [part.strip() for part in _COMMA_SPLIT_RE.split(text) if part.strip()]


# ---------------------------------------------------------------------------
# Production companies
# ---------------------------------------------------------------------------


def parse_production_companies(value: Any) -> list[ProductionCompany]:
    """
    Parse a production companies field into ``ProductionCompany`` entries.

    Accepted shapes, tried in order:
      1. ``[Name]`` shorthand (letters, digits, whitespace, ``&.-``)
      2. JSON array of strings or ``{"name", "id"}`` objects
      3. already-decoded list / dict values
      4. pipe separated names
      5. comma separated names (the common case)
    """

    field_input = classify_field(value)
    if field_input is None:
        return []

    try:
        if isinstance(field_input, JsonArray):
            return [_company_from_item(item) for item in field_input.items]
        if isinstance(field_input, JsonObject):
            return [_company_from_item(field_input.fields)]
        return _companies_from_text(field_input.text)
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "Production companies parse failed, using fallback split: %s value=%r",
            exc,
            value,
        )
        return _fallback_companies(value)


def _companies_from_text(raw: str) -> list[ProductionCompany]:
    text = raw.strip()
    if _looks_like_array(text):
        match = _BRACKETED_NAME_RE.match(text)
        if match:
            return [ProductionCompany(name=match.group(1).strip())]

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Bracketed production companies value is not JSON: %r", text)
        else:
            if isinstance(parsed, list):
                return [_company_from_item(item) for item in parsed]

    if "|" in text:
        return [ProductionCompany(name=name.strip()) for name in text.split("|")]

    return [ProductionCompany(name=name) for name in _split_commas(text)]


def _company_from_item(item: Any) -> ProductionCompany:
    if isinstance(item, str):
        return ProductionCompany(name=item)
    if isinstance(item, dict):
        return ProductionCompany(
            name=str(item.get("name") or UNKNOWN_COMPANY),
            id=item.get("id") or None,
        )
    return ProductionCompany(name=UNKNOWN_COMPANY)


def _fallback_companies(value: Any) -> list[ProductionCompany]:
    try:
        if not isinstance(value, str):
            return [ProductionCompany(name=str(value))]

        text = value.strip()
        if _looks_like_array(text):
            return [ProductionCompany(name=text[1:-1].strip())]
        for separator in (",", "|", ";"):
            if separator in text:
                if separator == ",":
                    names = _split_commas(text)
                else:
                    names = [name.strip() for name in text.split(separator)]
                return [ProductionCompany(name=name) for name in names]
        return [ProductionCompany(name=text)]
    except Exception as exc:  # noqa: BLE001
        logger.error("Fallback production companies parse failed: %s", exc)
        return [ProductionCompany(name=str(value))]


# ---------------------------------------------------------------------------
# Cast
# ---------------------------------------------------------------------------


def parse_cast_names(value: Any) -> list[str]:
    """
    Parse a cast field into actor names.

    Handles JSON arrays (strings or ``{"name": ...}`` objects),
    ``"Name as Role, Name as Role"`` text and plain comma lists.
    """

    field_input = classify_field(value)
    if field_input is None:
        return []

    try:
        return _cast_names(field_input)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Cast parse failed, using fallback split: %s value=%r", exc, value)
        if not isinstance(value, str):
            return []
        return _split_commas(value)


def parse_cast(value: Any) -> list[CastMember]:
    """
    Parse a cast field into structured ``CastMember`` entries.
    """

    return [CastMember(name=name) for name in parse_cast_names(value)]


def _cast_names(field_input: FieldInput) -> list[str]:
    if isinstance(field_input, JsonArray):
        return [_actor_name(item) for item in field_input.items]
    if isinstance(field_input, JsonObject):
        return [_actor_name(field_input.fields)]

    text = field_input.text.strip()
    if _looks_like_array(text):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("Cast value is not a JSON array: %s", exc)
        else:
            if isinstance(parsed, list):
                return [_actor_name(item) for item in parsed]

    if " as " in text:
        names = []
        for entry in _CAST_ENTRY_SPLIT_RE.split(text):
            name = _CAST_ROLE_SPLIT_RE.split(entry, maxsplit=1)[0].strip()
            if name:
                names.append(name)
        return names

    return _split_commas(text)


def _actor_name(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        return str(item.get("name") or UNKNOWN_ACTOR)
    return str(item)


# ---------------------------------------------------------------------------
# Generic string lists
# ---------------------------------------------------------------------------


def parse_string_list(value: Any) -> list[str]:
    """
    Parse a list field such as genres or writers.

    Bracketed values are read as JSON arrays; everything else is split on
    commas. Non-string JSON items are reduced to their ``name`` or text.
    """

    field_input = classify_field(value)
    if field_input is None:
        return []
    if isinstance(field_input, JsonArray):
        return [_list_item_text(item) for item in field_input.items]
    if isinstance(field_input, JsonObject):
        return [_list_item_text(field_input.fields)]

    text = field_input.text.strip()
    if _looks_like_array(text):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("String list value is not a JSON array: %r", text)
        else:
            if isinstance(parsed, list):
                return [_list_item_text(item) for item in parsed]

    return _split_commas(text)


def _list_item_text(item: Any) -> str:
    if isinstance(item, dict) and item.get("name"):
        return str(item["name"])
    return str(item)
