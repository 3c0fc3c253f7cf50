"""Result Mapping — turns service result dicts into HTTP responses.

Invariants:
    - Success results pass through with the "status" marker removed
    - Error results become the shared error envelope with the code's HTTP status
    - Context keys of an error result are surfaced under "details"
"""

import logging

from fastapi import status
from fastapi.responses import JSONResponse

from problemhub.core.errors import (
    ERROR_CODE_MAPPING, ErrorCode, ErrorSeverity, is_error,
)

logger = logging.getLogger(__name__)

_ENVELOPE_KEYS = {"status", "error_code", "message"}


def error_envelope(result: dict) -> tuple[int, dict]:
    code = ErrorCode(result["error_code"])
    category, http_status = ERROR_CODE_MAPPING[code]
    return http_status, {
        "error": {
            "code": code.value,
            "message": result["message"],
            "category": category.value,
            "severity": ErrorSeverity.WARNING.value,
            "details": {
                k: v for k, v in result.items() if k not in _ENVELOPE_KEYS
            },
        },
    }


def to_response(result: dict, success_status: int = status.HTTP_200_OK):
    """Render a service result; business errors never raise past this point."""
    if is_error(result):
        http_status, body = error_envelope(result)
        logger.info(
            f"Request rejected: {result['message']}",
            extra={"error_code": result["error_code"]},
        )
        return JSONResponse(status_code=http_status, content=body)
    payload = {k: v for k, v in result.items() if k != "status"}
    return JSONResponse(status_code=success_status, content=payload)
