# app/utils/spreadsheet.py
import csv
import io
import zipfile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode

EXCEL_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}


def _rows_from_excel(content: bytes) -> list[dict]:
    wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        sheet = wb.worksheets[0]
        data = list(sheet.iter_rows(values_only=True))
    finally:
        wb.close()

    if not data:
        return []

    headers = [str(h).strip() if h is not None else "" for h in data[0]]
    return [
        {headers[i]: row[i] for i in range(min(len(headers), len(row))) if headers[i]}
        for row in data[1:]
        if any(cell not in (None, "") for cell in row)
    ]


def _rows_from_csv(content: bytes) -> list[dict]:
    stream = io.StringIO(content.decode("utf-8-sig"))
    reader = csv.DictReader(stream)
    return [
        {(k or "").strip(): v for k, v in row.items() if k}
        for row in reader
        if any((v or "").strip() for v in row.values() if isinstance(v, str))
    ]


def read_tabular_rows(content: bytes, filename: str) -> list[dict]:
    """
    Parse the first sheet of an Excel workbook, or a CSV file, into one dict
    per non-blank data row keyed by the header row.
    """
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""

    try:
        if ext in EXCEL_EXTENSIONS:
            return _rows_from_excel(content)
        if ext == "csv":
            return _rows_from_csv(content)
    except (
        ValueError, KeyError, OSError, UnicodeDecodeError,
        zipfile.BadZipFile, InvalidFileException,
    ) as exc:
        raise AppException(
            400,
            "Failed to parse upload",
            ErrorCode.UPLOAD_FILE_INVALID,
            details={"reason": str(exc)},
        )

    raise AppException(
        400,
        "Unsupported file format, upload .xlsx or .csv",
        ErrorCode.UPLOAD_FILE_INVALID,
    )
