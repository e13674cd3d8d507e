"""Helpers shared by the command flows for reading service answers."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from descent.engine import Terminal

__all__ = ["as_mapping", "as_sequence", "format_coins", "int_value", "rejection", "text_value"]


def as_mapping(data: object) -> Mapping[str, Any]:
    """Return ``data`` if it is a mapping, otherwise an empty one."""

    if isinstance(data, Mapping):
        return data
    return {}


def as_sequence(data: object) -> Sequence[Any]:
    if isinstance(data, Sequence) and not isinstance(data, (str, bytes)):
        return data
    return ()


def int_value(value: object, default: int = 0) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def text_value(value: object, default: str = "") -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def format_coins(amount: object) -> str:
    return f"{int_value(amount):,} 🪙"


def rejection(data: Mapping[str, Any], *keys: str, fallback: str) -> Terminal:
    """Build the terminal outcome for a ``success: false`` answer."""

    message: Optional[str] = None
    for key in keys:
        candidate = text_value(data.get(key))
        if candidate:
            message = candidate
            break
    return Terminal(f"❌ {message or fallback}")
