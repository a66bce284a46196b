"""Small shared helpers: identifiers, clocks and date parsing."""

import random
import string
from dataclasses import fields, replace
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from .exceptions import ValidationError

Clock = Callable[[], datetime]

T = TypeVar("T")

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str, now: Optional[datetime] = None) -> str:
    """Build an identifier of the form ``<prefix>_<epoch millis>_<9 chars>``."""
    moment = now or datetime.now()
    millis = int(moment.timestamp() * 1000)
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}_{millis}_{suffix}"


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize an optional datetime."""
    return value.isoformat() if value is not None else None


def from_iso(value: Any) -> Optional[datetime]:
    """Parse an optional ISO timestamp produced by :func:`to_iso`."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def merge_settings(current: T, changes: Dict[str, Any]) -> T:
    """Return a copy of a settings dataclass with ``changes`` applied.

    Unknown keys raise :class:`ValidationError`.
    """
    known = {f.name for f in fields(current)}  # type: ignore[arg-type]
    for key in changes:
        if key not in known:
            raise ValidationError(key, changes[key], "unknown setting")
    return replace(current, **changes)  # type: ignore[type-var]


def settings_from_dict(cls: Type[T], defaults: T, stored: Dict[str, Any]) -> T:
    """Overlay persisted settings on ``defaults``, ignoring stale keys."""
    known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    return replace(  # type: ignore[type-var]
        defaults, **{k: v for k, v in stored.items() if k in known}
    )
