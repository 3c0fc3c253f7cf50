"""Attachment Filename Rules — validation and removal partitioning.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - A valid filename is a single path component (never escapes the attachment set)
    - partition_removal reports every requested name exactly once

Design Decisions:
    - Return error dict (not exceptions): uniform result shape with the services
"""

from problemhub.core.errors import ErrorCode, error_result

MAX_FILENAME_LENGTH = 256


def check_filename(filename: str | None) -> dict | None:
    """Reject names that are empty, too long, path-like or contain control chars."""
    if not filename or not filename.strip():
        return error_result(
            ErrorCode.VALIDATION, "Filename must not be empty", field="filename",
        )
    if len(filename) > MAX_FILENAME_LENGTH:
        return error_result(
            ErrorCode.VALIDATION,
            f"Filename exceeds {MAX_FILENAME_LENGTH} characters",
            field="filename",
        )
    if filename in (".", "..") or "/" in filename or "\\" in filename:
        return error_result(
            ErrorCode.VALIDATION,
            f"Filename '{filename}' must not contain path components",
            field="filename",
        )
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in filename):
        return error_result(
            ErrorCode.VALIDATION,
            "Filename must not contain control characters",
            field="filename",
        )
    return None


def partition_removal(
    requested: set[str], existing: set[str],
) -> tuple[set[str], set[str]]:
    """Split requested names into (removable, not_found)."""
    return requested & existing, requested - existing
