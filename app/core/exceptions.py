from typing import Any

from fastapi import HTTPException
from app.constants.error_codes import ErrorCode


class AppException(HTTPException):
    """
    Business-rule failure raised from services.

    Rendered by ``app_exception_handler`` as
    ``{success: false, message, error_code, details}``. ``details`` carries
    machine-readable context such as stock counts or the offending import row.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details

    @property
    def message(self) -> str:
        return self.detail
