"""Owner preference documents (notifications, display, privacy sections)."""
from __future__ import annotations

import copy
from types import MappingProxyType
from typing import Any, Mapping

DEFAULT_PREFERENCES: Mapping[str, Mapping[str, Any]] = MappingProxyType({
    "notifications": MappingProxyType({
        "weekly_summary": True,
        "monthly_summary": True,
        "expense_alerts": True,
        "registration_reminders": True,
        "achievements": True,
        "tips": True,
    }),
    "display": MappingProxyType({
        "currency": "BRL",
        "date_format": "DD/MM/YYYY",
        "number_format": "pt-BR",
        "theme": "auto",
        "language": "pt-BR",
    }),
    "privacy": MappingProxyType({
        "participate_benchmarking": False,
        "share_data_for_improvements": False,
    }),
})


def default_preferences() -> dict[str, dict[str, Any]]:
    return {section: dict(values) for section, values in DEFAULT_PREFERENCES.items()}


def effective_preferences(stored: Mapping[str, Any] | None) -> dict[str, Any]:
    """Stored document, or the defaults when nothing was saved yet."""
    return copy.deepcopy(dict(stored)) if stored else default_preferences()


def merge_preferences(current: Mapping[str, Any] | None, update: Mapping[str, Mapping[str, Any] | None]) -> dict[str, Any]:
    """Merge ``update`` section by section; keys absent from a section keep their stored value."""
    merged = copy.deepcopy(dict(current or {}))
    for section, values in update.items():
        if values is None:
            continue
        if not isinstance(values, Mapping):
            merged[section] = values
            continue
        existing = merged.get(section) or {}
        merged[section] = {**existing, **values}
    return merged


__all__ = ["DEFAULT_PREFERENCES", "default_preferences", "effective_preferences", "merge_preferences"]
