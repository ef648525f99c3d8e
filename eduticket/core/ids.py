"""
Identifier helpers shared by every module.
"""

from typing import Any, Optional
from uuid import UUID


def as_uuid(value: Any) -> Optional[UUID]:
    """Parse a UUID from a string (or pass one through); None when invalid."""
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None
