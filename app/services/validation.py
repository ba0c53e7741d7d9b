"""Field-presence and paging checks shared by the services."""

from typing import Iterable, List, Optional

from app.core.exceptions import ValidationError


def is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def missing_fields(obj, names: Iterable[str]) -> List[str]:
    """Names from ``names`` whose attribute on ``obj`` is absent or blank."""
    return [name for name in names if is_blank(getattr(obj, name, None))]


def require_fields(obj, names: Iterable[str], what: str = "payload") -> None:
    missing = missing_fields(obj, names)
    if missing:
        raise ValidationError(
            f"Incomplete {what}: missing {', '.join(missing)}",
            fields=missing,
        )


def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    if limit is None:
        return default
    return max(1, min(int(limit), maximum))


def check_offset(offset: Optional[int]) -> int:
    if offset is None:
        return 0
    if offset < 0:
        raise ValidationError("offset must be >= 0", fields=["offset"])
    return int(offset)
