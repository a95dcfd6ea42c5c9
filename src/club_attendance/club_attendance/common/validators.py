from __future__ import annotations

from ..core.exceptions import ValidationError


def require_non_empty(value: str | None, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()
