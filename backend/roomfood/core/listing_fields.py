"""
Parsing for the multipart listing form.

Browsers send every field as a string: tags and amenities arrive as
comma-separated text, numbers and booleans as their text form, and a blank
field means "unset".
"""

import math
from typing import Iterable, List, Optional, Union

from roomfood.core.exceptions import ValidationException
from roomfood.db.models import ListingType


def parse_csv_list(value: Union[str, Iterable[str], None]) -> List[str]:
    """'WiFi, AC,,' -> ['WiFi', 'AC']; lists are trimmed the same way."""
    if value is None:
        return []
    parts = value.split(",") if isinstance(value, str) else list(value)
    return [p.strip() for p in parts if p and p.strip()]


def parse_optional_float(value: Optional[str], field: str) -> Optional[float]:
    if value is None or value.strip() == "":
        return None
    try:
        parsed = float(value)
    except ValueError:
        raise ValidationException(f"{field} must be a number", code="invalid_number")
    if math.isnan(parsed) or math.isinf(parsed):
        raise ValidationException(f"{field} must be a number", code="invalid_number")
    return parsed


def parse_price(value: Optional[str]) -> Optional[float]:
    """Blank or zero leaves the price unset; negatives are rejected."""
    price = parse_optional_float(value, "price")
    if price is None or price == 0:
        return None
    if price < 0:
        raise ValidationException("price must be a positive number", code="invalid_price")
    return price


def parse_coordinate(value: Optional[str], field: str, bound: float) -> Optional[float]:
    coordinate = parse_optional_float(value, field)
    if coordinate is not None and not -bound <= coordinate <= bound:
        raise ValidationException(f"{field} must be between -{bound:g} and {bound:g}", code="invalid_coordinate")
    return coordinate


def parse_bool(value: Optional[str], default: bool = True) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def parse_listing_type(value: Optional[str], default: Optional[ListingType] = ListingType.ROOM) -> Optional[ListingType]:
    if value is None or value.strip() == "":
        return default
    try:
        return ListingType(value.strip().lower())
    except ValueError:
        allowed = ", ".join(t.value for t in ListingType)
        raise ValidationException(f"type must be one of: {allowed}", code="invalid_listing_type")
