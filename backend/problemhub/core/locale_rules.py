"""Locale Rules — normalization, validation and result-locale fallback.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - normalize_locale is idempotent and case-insensitive ("en-US" == "en-us")
    - resolve_result_locale returns None only when no locale exists

Design Decisions:
    - Lower-case storage form: the unique (problem_id, locale) constraint then
      enforces collision of case variants without a functional index
"""

import re

from problemhub.core.errors import ErrorCode, error_result

_LOCALE_PATTERN = re.compile(r"^[A-Za-z]{2,3}(-[A-Za-z0-9]{2,8})*$")
MAX_LOCALE_LENGTH = 35


def normalize_locale(locale: str) -> str:
    return locale.strip().lower()


def check_locale(locale: str | None) -> dict | None:
    """Return VALIDATION error for malformed locale codes, None if acceptable."""
    if not locale or not locale.strip():
        return error_result(
            ErrorCode.VALIDATION, "Locale must not be empty", field="locale",
        )
    candidate = locale.strip()
    if len(candidate) > MAX_LOCALE_LENGTH or not _LOCALE_PATTERN.match(candidate):
        return error_result(
            ErrorCode.VALIDATION,
            f"Invalid locale code '{candidate}'",
            field="locale",
        )
    return None


def resolve_result_locale(
    available: list[str], requested: str | None, default: str | None,
) -> str | None:
    """Pick which statement to render: requested, then default, then first."""
    if not available:
        return None
    normalized = set(available)
    if requested and normalize_locale(requested) in normalized:
        return normalize_locale(requested)
    if default and normalize_locale(default) in normalized:
        return normalize_locale(default)
    return sorted(normalized)[0]
