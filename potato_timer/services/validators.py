from enum import Enum
from typing import List, Optional, Type, TypeVar

from potato_timer.errors import ValidationError
from potato_timer.models import MediaType
from potato_timer.schema.request import MediaItem

EnumT = TypeVar("EnumT", bound=Enum)


def parse_choice(enum_cls: Type[EnumT], value, label: str) -> EnumT:
    """Map a raw string onto ``enum_cls`` or fail with ValidationError."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"invalid {label} {value!r}; expected one of: {allowed}")


def parse_optional_choice(enum_cls: Type[EnumT], value, label: str) -> Optional[EnumT]:
    if value is None or value == "":
        return None
    return parse_choice(enum_cls, value, label)


def require_text(value: Optional[str], label: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{label} is required")
    return value.strip()


def require_non_negative(value: Optional[int], label: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{label} must be a non-negative integer")
    return value


def validate_media(items: Optional[List[MediaItem]]) -> List[MediaItem]:
    """Check every media item up front so nothing is written for a bad list."""
    checked = []
    for index, item in enumerate(items or []):
        media_type = parse_choice(MediaType, item.type, f"media type at position {index}")
        url = require_text(item.url, f"media url at position {index}")
        checked.append(MediaItem(type=media_type.value, url=url, thumbnail_url=item.thumbnail_url or None))
    return checked
