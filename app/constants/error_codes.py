# app/constants/error_codes.py

from enum import Enum


class ErrorCode(str, Enum):
    # -------- generic --------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ID = "INVALID_ID"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # -------- products --------
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    SIZE_REQUIRED = "SIZE_REQUIRED"
    SIZE_NOT_AVAILABLE = "SIZE_NOT_AVAILABLE"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"

    # -------- bulk upload --------
    UPLOAD_FILE_MISSING = "UPLOAD_FILE_MISSING"
    UPLOAD_FILE_INVALID = "UPLOAD_FILE_INVALID"
    UPLOAD_DUPLICATE = "UPLOAD_DUPLICATE"
    UPLOAD_BATCH_NOT_FOUND = "UPLOAD_BATCH_NOT_FOUND"

    # -------- orders --------
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    ORDER_ITEMS_REQUIRED = "ORDER_ITEMS_REQUIRED"
    ORDER_ALREADY_CANCELLED = "ORDER_ALREADY_CANCELLED"
    ORDER_INVALID_STATE = "ORDER_INVALID_STATE"
