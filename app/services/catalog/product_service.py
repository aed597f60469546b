# app/services/catalog/product_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, asc, desc, or_

from app.models.catalog.product_models import Product, ProductSize
from app.schemas.catalog.product_schemas import (
    ProductCreate,
    ProductUpdate,
    ProductOut,
    ProductListData,
    SizeQuantity,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.utils.pagination import clamp_paging, build_pagination
from app.utils.search import LIKE_ESCAPE, contains_pattern
from app.utils.logger import get_logger

logger = get_logger(__name__)

# nullable columns an update may clear explicitly
NULLABLE_FIELDS = {"barcode", "gst"}


def _map_product(product: Product) -> ProductOut:
    return ProductOut(
        id=product.id,
        name=product.name,
        category=product.category,
        brand=product.brand,
        description=product.description,
        barcode=product.barcode,
        hsn_sac=product.hsn_sac,
        gst=product.gst,
        wholesale_price=product.wholesale_price,
        retail_price=product.retail_price,
        sizes=[SizeQuantity(size=s.size, quantity=s.quantity) for s in product.sizes],
        quantity=product.total_quantity,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def build_product(payload: ProductCreate) -> Product:
    data = payload.model_dump(exclude={"sizes"})
    return Product(
        **data,
        sizes=[
            ProductSize(size=s.size, quantity=s.quantity, position=position)
            for position, s in enumerate(payload.sizes)
        ],
    )


def apply_sizes(product: Product, sizes: list[SizeQuantity]) -> None:
    """Replace the size list in place so unchanged labels keep their rows."""
    wanted = {s.size for s in sizes}
    for row in list(product.sizes):
        if row.size not in wanted:
            product.sizes.remove(row)

    for position, entry in enumerate(sizes):
        row = product.find_size(entry.size)
        if row is None:
            product.sizes.append(
                ProductSize(size=entry.size, quantity=entry.quantity, position=position)
            )
        else:
            row.quantity = entry.quantity
            row.position = position


async def _get_product_or_404(db: AsyncSession, product_id: int) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise AppException(
            404,
            "Product not found",
            ErrorCode.PRODUCT_NOT_FOUND,
        )
    return product


# ---------------- CREATE ----------------
async def create_product(db: AsyncSession, payload: ProductCreate) -> ProductOut:
    product = build_product(payload)
    db.add(product)
    await db.commit()

    logger.info("Product created", extra={"product_id": product.id})
    return _map_product(product)


# ---------------- LIST ----------------
async def list_products(
    *,
    db: AsyncSession,
    q: str | None,
    page: int,
    limit: int,
    sort_by: str,
    sort_dir: str,
) -> ProductListData:
    page, page_size = clamp_paging(page, limit)

    filters = []
    if q:
        pattern = contains_pattern(q)
        filters.append(
            or_(
                Product.name.ilike(pattern, escape=LIKE_ESCAPE),
                Product.category.ilike(pattern, escape=LIKE_ESCAPE),
                Product.brand.ilike(pattern, escape=LIKE_ESCAPE),
                Product.barcode.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )

    # =========================
    # SORTING
    # =========================
    stock = (
        select(
            ProductSize.product_id,
            func.sum(ProductSize.quantity).label("quantity"),
        )
        .group_by(ProductSize.product_id)
        .subquery()
    )
    stock_qty = func.coalesce(stock.c.quantity, 0)

    allowed_sort_fields = {
        "name": Product.name,
        "retailPrice": Product.retail_price,
        "quantity": stock_qty,
    }
    sort_col = allowed_sort_fields.get(sort_by, Product.name)
    direction = desc if sort_dir == "desc" else asc

    data_stmt = (
        select(Product)
        .outerjoin(stock, stock.c.product_id == Product.id)
        .where(*filters)
        .order_by(direction(sort_col), direction(Product.id))
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    products = (await db.scalars(data_stmt)).all()

    # =========================
    # COUNT
    # =========================
    count_stmt = select(func.count()).select_from(
        select(Product.id).where(*filters).subquery()
    )
    total = await db.scalar(count_stmt) or 0

    return ProductListData(
        products=[_map_product(p) for p in products],
        pagination=build_pagination(total, page, page_size),
    )


# ---------------- GET ----------------
async def get_product(db: AsyncSession, product_id: int) -> ProductOut:
    product = await _get_product_or_404(db, product_id)
    return _map_product(product)


# ---------------- UPDATE ----------------
async def update_product(
    db: AsyncSession,
    product_id: int,
    payload: ProductUpdate,
) -> ProductOut:
    product = await _get_product_or_404(db, product_id)

    updates = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field in NULLABLE_FIELDS
    }
    if not updates:
        raise AppException(
            400,
            "No changes detected",
            ErrorCode.VALIDATION_ERROR,
        )

    sizes = updates.pop("sizes", None)
    for field, value in updates.items():
        setattr(product, field, value)
    if sizes is not None:
        apply_sizes(product, payload.sizes)

    await db.commit()

    logger.info(
        "Product updated",
        extra={"product_id": product.id, "fields": sorted(payload.model_fields_set)},
    )
    return _map_product(product)


# ---------------- DELETE ----------------
async def delete_product(db: AsyncSession, product_id: int) -> None:
    product = await _get_product_or_404(db, product_id)
    await db.delete(product)
    await db.commit()

    logger.info("Product deleted", extra={"product_id": product_id})
