"""Utility helpers for the ReelCache service."""

from __future__ import annotations

from typing import Any, Mapping


TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def first_present(data: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-empty value among ``keys``."""

    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def coerce_int(value: Any) -> int:
    """Truncate numeric payload values to ``int``; unusable values become 0."""

    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except ValueError:
            return 0
    return 0


def coerce_bool(value: object, *, default: bool = False) -> bool:
    """Interpret query-string style booleans."""

    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
    return default


def build_image_url(path: str, base_url: str) -> str:
    if not path:
        return ""
    if path.startswith("http"):
        return path
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{base_url}{path}"
