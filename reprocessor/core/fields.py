"""Merging of the two field-input surfaces into one canonical field list.

Field names are compared case-insensitively and stored lowercase and trimmed,
in the order they were first seen.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping

REQUIRED_FIELDS_KEY = "Required_Input_Fields__c"


def split_field_list(text: str | None) -> list[str]:
    """Split a comma separated list, trimming tokens and dropping empty ones."""

    if not text:
        return []
    return [token.strip() for token in str(text).split(",") if token.strip()]


def normalise_fields(fields: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for name in fields:
        key = str(name).strip().lower()
        if key:
            seen.setdefault(key, None)
    return list(seen)


def merge_from_row_selection(
    existing_fields: Iterable[str] | None,
    selected_rows: Iterable[Mapping[str, Any]],
    *,
    key: str = REQUIRED_FIELDS_KEY,
) -> list[str]:
    """Union each selected row's required fields into ``existing_fields``."""

    merged = normalise_fields(existing_fields or [])
    for row in selected_rows:
        merged.extend(split_field_list(row.get(key)))
    return normalise_fields(merged)


def merge_from_free_text(text: str | None) -> list[str]:
    return normalise_fields(split_field_list(text))


def fields_to_text(fields: Iterable[str]) -> str:
    return ", ".join(fields)


def unique_in_order(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))
