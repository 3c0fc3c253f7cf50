"""Statement Rules — validates titles and typed content sections.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Every section has a known SectionType
    - Only `samples` sections carry sample pairs; every pair has input and output strings
    - validate_statement chains all checks — first error wins
"""

from problemhub.core.domain_types import SectionType
from problemhub.core.errors import ErrorCode, error_result
from problemhub.core.locale_rules import check_locale

MAX_TITLE_LENGTH = 256
MAX_SECTIONS = 64

_SECTION_TYPES = {t.value for t in SectionType}


def check_title(title: str | None) -> dict | None:
    if not title or not title.strip():
        return error_result(
            ErrorCode.VALIDATION, "Title must not be empty", field="title",
        )
    if len(title) > MAX_TITLE_LENGTH:
        return error_result(
            ErrorCode.VALIDATION,
            f"Title exceeds {MAX_TITLE_LENGTH} characters",
            field="title",
        )
    return None


def _check_samples(index: int, samples) -> dict | None:
    if not isinstance(samples, list):
        return error_result(
            ErrorCode.VALIDATION,
            f"Section {index}: samples must be a list",
            field=f"content_sections.{index}.samples",
        )
    for j, sample in enumerate(samples):
        if (
            not isinstance(sample, dict)
            or not isinstance(sample.get("input"), str)
            or not isinstance(sample.get("output"), str)
        ):
            return error_result(
                ErrorCode.VALIDATION,
                f"Section {index}: sample {j} needs string input and output",
                field=f"content_sections.{index}.samples.{j}",
            )
    return None


def check_content_sections(sections) -> dict | None:
    if not isinstance(sections, list):
        return error_result(
            ErrorCode.VALIDATION, "Content sections must be a list",
            field="content_sections",
        )
    if len(sections) > MAX_SECTIONS:
        return error_result(
            ErrorCode.VALIDATION,
            f"A statement holds at most {MAX_SECTIONS} sections",
            field="content_sections",
        )
    for i, section in enumerate(sections):
        if not isinstance(section, dict) or section.get("type") not in _SECTION_TYPES:
            return error_result(
                ErrorCode.VALIDATION,
                f"Section {i}: type must be one of {sorted(_SECTION_TYPES)}",
                field=f"content_sections.{i}.type",
            )
        samples = section.get("samples")
        if section["type"] == SectionType.SAMPLES.value:
            error = _check_samples(i, samples or [])
            if error:
                return error
        elif samples:
            return error_result(
                ErrorCode.VALIDATION,
                f"Section {i}: only samples sections carry samples",
                field=f"content_sections.{i}.samples",
            )
    return None


def validate_statement(locale: str, title: str, sections) -> dict | None:
    return (
        check_locale(locale)
        or check_title(title)
        or check_content_sections(sections)
    )
