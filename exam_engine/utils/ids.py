"""
Identifier parsing
"""
from typing import Any
from uuid import UUID

from exam_engine.exceptions import DataValidationError


def parse_uuid(value: Any, field: str = "id") -> UUID:
    """Accept a UUID or its string form, raising DataValidationError otherwise"""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise DataValidationError(f"Invalid {field}: {value!r}")
