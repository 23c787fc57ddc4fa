"""
Shared field checks for request schemas.
"""
from typing import Any


def reject_null(value: Any) -> Any:
    """
    Partial updates may leave a field out, but may not clear a required one.

    Raises:
        ValueError: If the client sent an explicit null
    """
    if value is None:
        raise ValueError("Field may not be null")
    return value
