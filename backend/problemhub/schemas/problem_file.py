"""Problem File Schemas — request bodies for bulk attachment operations.

Invariants:
    - filenames lists are non-empty and bounded
    - Per-name validation (path components, control chars) happens in core/file_rules.py
"""

from pydantic import BaseModel, Field


class FilenameList(BaseModel):
    """Names targeted by remove / download requests."""
    filenames: list[str] = Field(min_length=1, max_length=1000)
