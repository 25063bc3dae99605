"""Checks on caller-supplied arguments, raising InvalidArgumentError."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .errors import InvalidArgumentError
from .identity import Identity


def require_identity(value: Any, field_name: str) -> Identity:
    if not isinstance(value, Identity):
        raise InvalidArgumentError(f"{field_name} must be an Identity, got {type(value).__name__}")
    return value


def require_id(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidArgumentError(f"{field_name} must be a non-empty string")
    return value


def require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{field_name} must be a string, got {type(value).__name__}")
    return value


def require_record_ids(value: Any) -> list[str]:
    """Validate and de-duplicate record ids, keeping first-seen order."""
    if value is None or isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise InvalidArgumentError("record_ids must be a collection of record id strings")
    
    record_ids = list(value)
    for idx, record_id in enumerate(record_ids):
        if not isinstance(record_id, str) or not record_id:
            raise InvalidArgumentError(f"record_ids[{idx}] must be a non-empty string")
    
    unique_ids = list(dict.fromkeys(record_ids))
    if not unique_ids:
        raise InvalidArgumentError("share request must name at least one record")
    return unique_ids
