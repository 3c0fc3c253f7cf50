"""Problem File Routes — upload, list, remove and stream problem attachments.

Invariants:
    - Uploads are handed to the ledger as a file object (never read fully into memory)
    - Downloads stream chunk by chunk; the blob handle is released when the
      response finishes or the client disconnects
    - Removal reports per-name outcome (removed / not_found) with 200

Design Decisions:
    - POST .../remove and .../download with a JSON body: filename lists do not
      fit in a path, and DELETE bodies are poorly supported by clients
    - filename form field optional: defaults to the uploaded file's own name
"""

from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import StreamingResponse

from problemhub.api.dependencies import get_problem_service
from problemhub.api.identity import get_identity
from problemhub.api.result_response import to_response
from problemhub.core.domain_types import FileType, Identity
from problemhub.core.errors import is_error
from problemhub.schemas.problem_file import FilenameList
from problemhub.services.problem_service import ProblemService

router = APIRouter(prefix="/api/v1/problems", tags=["problem-files"])


@router.get("/{problem_ref}/files")
async def list_problem_files(
    problem_ref: str,
    file_type: FileType | None = Query(None),
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    """Attachments ordered by (file_type, filename)."""
    result = await service.list_problem_files(identity, problem_ref, file_type)
    return to_response(result)


@router.post("/{problem_ref}/files/{file_type}", status_code=status.HTTP_201_CREATED)
async def add_problem_file(
    problem_ref: str,
    file_type: FileType,
    file: UploadFile = File(...),
    filename: str | None = Form(None),
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    """Attach a new file; an existing name must be removed first."""
    try:
        result = await service.add_problem_file(
            identity, problem_ref, file_type,
            filename if filename is not None else (file.filename or ""),
            file.file,
        )
    finally:
        await file.close()
    return to_response(result, status.HTTP_201_CREATED)


@router.post("/{problem_ref}/files/{file_type}/remove")
async def remove_problem_files(
    problem_ref: str,
    file_type: FileType,
    body: FilenameList,
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    result = await service.remove_problem_files(
        identity, problem_ref, file_type, body.filenames,
    )
    return to_response(result)


@router.post("/{problem_ref}/files/{file_type}/download")
async def download_problem_files(
    problem_ref: str,
    file_type: FileType,
    body: FilenameList,
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    """Download descriptors: one streaming path per found file plus not_found."""
    result = await service.download_problem_files(
        identity, problem_ref, file_type, body.filenames,
    )
    return to_response(result)


@router.get("/{problem_ref}/files/{file_type}/{filename}")
async def stream_problem_file(
    problem_ref: str,
    file_type: FileType,
    filename: str,
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    """Stream one attachment's content."""
    result = await service.open_problem_file(
        identity, problem_ref, file_type, filename,
    )
    if is_error(result):
        return to_response(result)
    descriptor = result["file"]
    return StreamingResponse(
        result["stream"],
        media_type="application/octet-stream",
        headers={
            "Content-Length": str(descriptor["size_bytes"]),
            "Content-Disposition": (
                f"attachment; filename*=UTF-8''{quote(filename, safe='')}"
            ),
        },
    )
