"""
utils/parsing.py

Small, pure helpers shared by the listing write path and the query layer.
"""

import enum
import re
from typing import Optional, Type, TypeVar

E = TypeVar("E", bound=enum.Enum)

_NUMBER_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")


def parse_numeric(text: Optional[str]) -> int:
    """
    Extract the first number from a human-readable price/area string.

        "AED 2,500,000"  -> 2500000
        "1,450 sq ft"    -> 1450
        "Price on request" -> 0
    """
    if not text:
        return 0
    match = _NUMBER_RE.search(text)
    if not match:
        return 0
    return int(float(match.group(0).replace(",", "")))


def parse_enum(enum_cls: Type[E], raw) -> Optional[E]:
    """
    Map a client-supplied value onto ``enum_cls``.

    Accepts a member, its value, or its name (case-insensitive).
    Anything else returns None ("unspecified").
    """
    if raw is None or isinstance(raw, enum_cls):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    for member in enum_cls:
        if text == member.value or text.lower() == str(member.value).lower() or text.upper() == member.name:
            return member
    return None


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
