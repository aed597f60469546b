# app/routers/catalog/bulk_upload_router.py

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import MAX_UPLOAD_BYTES
from app.core.db import get_db
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.schemas.catalog.upload_schemas import (
    BulkUploadResult,
    UploadBatchOut,
    RollbackResult,
)
from app.services.catalog.bulk_upload_service import (
    import_products,
    rollback_upload,
    list_upload_batches,
)
from app.utils.get_user import get_current_operator
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(
    prefix="/product/bulk",
    tags=["Bulk Upload"],
    dependencies=[Depends(get_current_operator)],
)
logger = get_logger(__name__)


@router.post(
    "/add",
    response_model=APIResponse[BulkUploadResult],
    status_code=status.HTTP_201_CREATED,
)
async def bulk_add_products_api(
    file: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
):
    if file is None or not file.filename:
        raise AppException(400, "No file uploaded", ErrorCode.UPLOAD_FILE_MISSING)

    content = await file.read(MAX_UPLOAD_BYTES + 1)
    if not content:
        raise AppException(400, "Uploaded file is empty", ErrorCode.UPLOAD_FILE_INVALID)
    if len(content) > MAX_UPLOAD_BYTES:
        raise AppException(
            400,
            f"File exceeds the {MAX_UPLOAD_BYTES} byte upload limit",
            ErrorCode.UPLOAD_FILE_INVALID,
        )

    logger.info("Bulk upload received", extra={"file_name": file.filename, "bytes": len(content)})
    result = await import_products(db, content, file.filename)
    return success_response("Products uploaded successfully", result)


@router.delete("/rollback/{upload_id}", response_model=APIResponse[RollbackResult])
async def rollback_upload_api(
    upload_id: str,
    db: AsyncSession = Depends(get_db),
):
    result = await rollback_upload(db, upload_id)
    return success_response(
        f"Rolled back {result.deleted_products} products and "
        f"{result.reverted_changes} quantity changes",
        result,
    )


@router.get("/batches", response_model=APIResponse[list[UploadBatchOut]])
async def list_upload_batches_api(
    db: AsyncSession = Depends(get_db),
):
    batches = await list_upload_batches(db)
    return success_response("Upload batches fetched successfully", batches)
