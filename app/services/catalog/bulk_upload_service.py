# app/services/catalog/bulk_upload_service.py
"""
Bulk product import from spreadsheets, with duplicate-file protection and
reversible batches.

A file is identified by the SHA-256 of its bytes. Rows sharing
(name, category, brand) describe one product; each row adds one size.
Existing products get their size quantities increased, unknown products are
inserted. Every change needed to undo the import is stored on the
UploadBatch so that a rollback restores the catalog to its prior state.
"""
import hashlib
import uuid
from decimal import Decimal, InvalidOperation

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError

from app.models.catalog.product_models import Product, ProductSize
from app.models.catalog.upload_batch_models import UploadBatch, QuantityChange
from app.schemas.catalog.product_schemas import ProductCreate
from app.schemas.catalog.upload_schemas import (
    BulkUploadResult,
    UploadBatchOut,
    RollbackResult,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.services.catalog.product_service import build_product
from app.utils.spreadsheet import read_tabular_rows
from app.utils.logger import get_logger

logger = get_logger(__name__)

# spreadsheet header -> ProductCreate field
COLUMN_MAP = {
    "name": "name",
    "category": "category",
    "brand": "brand",
    "wholesalePrice": "wholesale_price",
    "retailPrice": "retail_price",
    "description": "description",
    "barcode": "barcode",
    "hsnSac": "hsn_sac",
    "gst": "gst",
}

# header row is row 1
FIRST_DATA_ROW = 2


def fingerprint(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _cell_quantity(value, row_no: int) -> int:
    text = _cell_text(value)
    if not text:
        return 0
    try:
        number = Decimal(text)
    except InvalidOperation:
        number = None
    if number is None or number != number.to_integral_value() or number < 0:
        raise AppException(
            400,
            f"Row {row_no}: quantity must be a whole number >= 0",
            ErrorCode.UPLOAD_FILE_INVALID,
            details={"row": row_no, "value": text},
        )
    return int(number)


def group_rows(rows: list[dict]) -> list[ProductCreate]:
    """
    Fold spreadsheet rows into one ProductCreate per (name, category, brand).

    The first row of a group supplies the product fields; every row adds a
    size. A size repeated within a group has its quantities summed.
    """
    grouped: dict[tuple[str, str, str], dict] = {}
    first_row: dict[tuple[str, str, str], int] = {}

    for offset, row in enumerate(rows):
        row_no = FIRST_DATA_ROW + offset
        name = _cell_text(row.get("name"))
        category = _cell_text(row.get("category"))
        brand = _cell_text(row.get("brand"))
        size = _cell_text(row.get("size"))

        missing = [
            column
            for column, value in (("name", name), ("category", category), ("size", size))
            if not value
        ]
        if missing:
            raise AppException(
                400,
                f"Row {row_no}: missing {', '.join(missing)}",
                ErrorCode.UPLOAD_FILE_INVALID,
                details={"row": row_no, "missing": missing},
            )

        key = (name, category, brand)
        if key not in grouped:
            fields = {}
            for column, field in COLUMN_MAP.items():
                text = _cell_text(row.get(column))
                if field in ("barcode", "gst"):
                    fields[field] = text or None
                else:
                    fields[field] = text
            fields.update(name=name, category=category, brand=brand)
            grouped[key] = {"fields": fields, "sizes": {}}
            first_row[key] = row_no

        sizes = grouped[key]["sizes"]
        sizes[size] = sizes.get(size, 0) + _cell_quantity(row.get("quantity"), row_no)

    products = []
    for key, group in grouped.items():
        try:
            products.append(
                ProductCreate(
                    **group["fields"],
                    sizes=[
                        {"size": size, "quantity": qty}
                        for size, qty in group["sizes"].items()
                    ],
                )
            )
        except ValidationError as exc:
            row_no = first_row[key]
            raise AppException(
                400,
                f"Row {row_no}: invalid product data",
                ErrorCode.UPLOAD_FILE_INVALID,
                details={
                    "row": row_no,
                    "errors": [
                        {"field": ".".join(str(p) for p in e["loc"]), "message": e["msg"]}
                        for e in exc.errors()
                    ],
                },
            )
    return products


def _duplicate_upload(batch: UploadBatch) -> AppException:
    return AppException(
        409,
        "This file has already been uploaded",
        ErrorCode.UPLOAD_DUPLICATE,
        details={
            "upload_id": batch.upload_id,
            "uploaded_at": batch.uploaded_at.isoformat(),
        },
    )


# =====================================================
# IMPORT
# =====================================================
async def import_products(
    db: AsyncSession,
    content: bytes,
    file_name: str,
) -> BulkUploadResult:
    file_hash = fingerprint(content)

    existing_batch = await db.scalar(
        select(UploadBatch).where(UploadBatch.file_hash == file_hash)
    )
    if existing_batch:
        logger.info(
            "Duplicate upload rejected",
            extra={"file_name": file_name, "upload_id": existing_batch.upload_id},
        )
        raise _duplicate_upload(existing_batch)

    # parse and validate everything before the first write
    groups = group_rows(read_tabular_rows(content, file_name))
    if not groups:
        raise AppException(
            400,
            "Upload contains no product rows",
            ErrorCode.UPLOAD_FILE_INVALID,
        )

    new_products: list[Product] = []
    changes: list[QuantityChange] = []
    updated_products = 0

    for payload in groups:
        existing = await db.scalar(
            select(Product)
            .where(
                Product.name == payload.name,
                Product.category == payload.category,
                Product.brand == payload.brand,
            )
            .order_by(Product.id)
            .limit(1)
            .with_for_update()
        )

        if existing is None:
            product = build_product(payload)
            db.add(product)
            new_products.append(product)
            continue

        updated_products += 1
        next_position = max((s.position for s in existing.sizes), default=-1) + 1

        for entry in payload.sizes:
            row = existing.find_size(entry.size)
            if row is None:
                existing.sizes.append(
                    ProductSize(size=entry.size, quantity=entry.quantity, position=next_position)
                )
                next_position += 1
                changes.append(
                    QuantityChange(
                        product_id=existing.id,
                        size=entry.size,
                        old_quantity=0,
                        new_quantity=entry.quantity,
                        size_added=True,
                    )
                )
            else:
                old_quantity = row.quantity
                row.quantity = old_quantity + entry.quantity
                changes.append(
                    QuantityChange(
                        product_id=existing.id,
                        size=entry.size,
                        old_quantity=old_quantity,
                        new_quantity=row.quantity,
                    )
                )

    await db.flush()

    batch = UploadBatch(
        upload_id=str(uuid.uuid4()),
        file_name=file_name,
        file_hash=file_hash,
        product_ids=[p.id for p in new_products],
        updated_products=updated_products,
        quantity_changes=changes,
    )
    db.add(batch)

    try:
        await db.commit()
    except IntegrityError:
        # the same file committed concurrently; nothing of ours persisted
        await db.rollback()
        winner = await db.scalar(
            select(UploadBatch).where(UploadBatch.file_hash == file_hash)
        )
        if winner is None:
            raise
        raise _duplicate_upload(winner)

    logger.info(
        "Bulk upload imported",
        extra={
            "upload_id": batch.upload_id,
            "file_name": file_name,
            "inserted": len(new_products),
            "updated": updated_products,
        },
    )

    return BulkUploadResult(
        upload_id=batch.upload_id,
        file_name=file_name,
        inserted=len(new_products),
        updated=updated_products,
        quantity_changes=len(changes),
    )


# =====================================================
# ROLLBACK
# =====================================================
async def rollback_upload(db: AsyncSession, upload_id: str) -> RollbackResult:
    batch = await db.scalar(
        select(UploadBatch).where(UploadBatch.upload_id == upload_id)
    )
    if not batch:
        raise AppException(
            404,
            "Upload batch not found",
            ErrorCode.UPLOAD_BATCH_NOT_FOUND,
        )

    if batch.product_ids:
        await db.execute(
            delete(Product)
            .where(Product.id.in_(batch.product_ids))
            .execution_options(synchronize_session=False)
        )

    for change in batch.quantity_changes:
        size_match = (
            ProductSize.product_id == change.product_id,
            ProductSize.size == change.size,
        )
        if change.size_added:
            stmt = delete(ProductSize).where(*size_match)
        else:
            stmt = (
                update(ProductSize)
                .where(*size_match)
                .values(quantity=change.old_quantity)
            )
        await db.execute(stmt.execution_options(synchronize_session=False))

    result = RollbackResult(
        upload_id=batch.upload_id,
        file_name=batch.file_name,
        deleted_products=len(batch.product_ids),
        reverted_changes=len(batch.quantity_changes),
    )

    await db.delete(batch)
    await db.commit()

    logger.info(
        "Bulk upload rolled back",
        extra={
            "upload_id": upload_id,
            "deleted_products": result.deleted_products,
            "reverted_changes": result.reverted_changes,
        },
    )
    return result


# =====================================================
# LIST
# =====================================================
async def list_upload_batches(db: AsyncSession) -> list[UploadBatchOut]:
    batches = (
        await db.scalars(
            select(UploadBatch).order_by(UploadBatch.uploaded_at.desc(), UploadBatch.id.desc())
        )
    ).all()
    return [UploadBatchOut.model_validate(b) for b in batches]
