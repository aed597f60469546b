# app/utils/ids.py
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.utils.search import as_record_id


def parse_id(raw: str, label: str) -> int:
    """Path ids are positive integers; anything else is a 400, not a 404."""
    record_id = as_record_id(raw)
    if record_id is None:
        raise AppException(400, f"Invalid {label} ID", ErrorCode.INVALID_ID)
    return record_id
