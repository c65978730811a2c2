"""Row readers for bulk uploads. Accepts CSV or Excel (.xlsx); the first row holds headers."""

import csv
import io
from typing import Dict, List, Tuple

from fastapi import UploadFile
from openpyxl import load_workbook

from app.core.config import settings
from app.core.exceptions import ValidationError

# (row number as the user sees it in the file, values keyed by normalized header)
UploadRow = Tuple[int, Dict[str, str]]


def _norm(header) -> str:
    return (str(header).strip().lower() if header is not None else "").replace(" ", "_")


def _cell_str(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        # Excel stores "101" typed into a numeric cell as 101.0
        return str(int(value))
    return str(value).strip()


def _is_blank(values) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in values)


def parse_csv_rows(content: bytes) -> List[UploadRow]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ValidationError(f"CSV file must be UTF-8 encoded: {e}") from e
    reader = csv.reader(io.StringIO(text))
    header_row = next(reader, None)
    if not header_row:
        raise ValidationError("CSV file is empty or invalid.")
    headers = [_norm(h) for h in header_row]
    rows: List[UploadRow] = []
    for row_num, values in enumerate(reader, start=2):
        if _is_blank(values):
            continue
        rows.append((row_num, {h: _cell_str(v) for h, v in zip(headers, values) if h}))
    return rows


def parse_xlsx_rows(content: bytes) -> List[UploadRow]:
    try:
        wb = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise ValidationError(f"Invalid Excel file: {e}") from e
    try:
        ws = wb.active
        if not ws:
            raise ValidationError("Excel file has no active sheet")
        rows_iter = ws.iter_rows(values_only=True)
        header_row = next(rows_iter, None)
        if not header_row:
            raise ValidationError("Excel file has no header row")
        headers = [_norm(h) for h in header_row]
        rows: List[UploadRow] = []
        for row_num, values in enumerate(rows_iter, start=2):
            if not values or _is_blank(values):
                continue
            rows.append((row_num, {h: _cell_str(v) for h, v in zip(headers, values) if h}))
        return rows
    finally:
        wb.close()


async def read_upload_rows(file: UploadFile) -> List[UploadRow]:
    """Read an uploaded CSV/XLSX into numbered rows. Blank lines are skipped but keep numbering."""
    filename = (file.filename or "").lower()
    content = await file.read()
    if not content:
        raise ValidationError("File is empty")
    if filename.endswith(".xlsx"):
        rows = parse_xlsx_rows(content)
    elif filename.endswith(".csv") or not filename:
        rows = parse_csv_rows(content)
    else:
        raise ValidationError("File must be a CSV (.csv) or Excel (.xlsx) file")
    if not rows:
        raise ValidationError("File has no data rows")
    if len(rows) > settings.bulk_upload_max_rows:
        raise ValidationError(f"Maximum {settings.bulk_upload_max_rows} data rows allowed")
    return rows
