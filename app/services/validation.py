from __future__ import annotations

import math
from typing import Any


def _is_valid_age(age: Any) -> bool:
    if isinstance(age, bool):
        return False
    try:
        value = float(age)
    except (TypeError, ValueError):
        return False
    return not math.isnan(value) and value >= 0


def validate_new_user(payload: dict[str, Any]) -> list[str]:
    """Return human-readable problems with a user creation payload (empty if valid)."""

    errors: list[str] = []
    if not payload.get("username"):
        errors.append("Username is required")
    if not payload.get("email"):
        errors.append("Email is required")

    age = payload.get("age")
    if age not in (None, "") and not _is_valid_age(age):
        errors.append("Invalid age")
    return errors
