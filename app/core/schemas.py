"""Response shapes shared by the bulk upload endpoints."""

from typing import List

from pydantic import BaseModel


class SkippedRow(BaseModel):
    row: int
    reason: str


class BulkResult(BaseModel):
    """Outcome of a bulk upload: valid rows are committed, invalid ones reported."""

    total_rows: int
    created: int
    skipped: List[SkippedRow]
