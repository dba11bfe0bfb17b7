"""Locale overlay of translation documents onto a base document."""

from collections.abc import Iterable, Mapping
from typing import Any


def find_translation(
    translations: Iterable[Mapping[str, Any]],
    locale: str,
) -> Mapping[str, Any] | None:
    for row in translations:
        if row.get("language_code") == locale:
            return row.get("translated_data") or {}
    return None


def merge(
    base_data: Mapping[str, Any],
    translations: Iterable[Mapping[str, Any]],
    locale: str | None,
) -> dict[str, Any]:
    """Return the effective document for ``locale``.

    ``translations`` are rows shaped ``{"language_code", "translated_data"}``.
    Translation values win on key collisions. With no row for ``locale`` the
    base document comes back unchanged: translatable fields are absent and
    no other locale is consulted. Inputs are never mutated.
    """
    merged = dict(base_data)
    if locale is None:
        return merged

    translated = find_translation(translations, locale)
    if translated:
        merged.update(translated)
    return merged
