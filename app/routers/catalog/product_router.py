# app/routers/catalog/product_router.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.catalog.product_schemas import (
    ProductCreate,
    ProductUpdate,
    ProductOut,
    ProductListData,
)
from app.services.catalog.product_service import (
    create_product,
    list_products,
    get_product,
    update_product,
    delete_product,
)
from app.utils.get_user import get_current_operator
from app.utils.ids import parse_id
from app.utils.pagination import DEFAULT_PAGE_SIZE
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(
    prefix="/product",
    tags=["Products"],
    dependencies=[Depends(get_current_operator)],
)
logger = get_logger(__name__)


@router.post(
    "/add",
    response_model=APIResponse[ProductOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_product_api(
    payload: ProductCreate,
    db: AsyncSession = Depends(get_db),
):
    logger.info("Create product", extra={"product_name": payload.name})
    product = await create_product(db, payload)
    return success_response("Product created successfully", product)


@router.get("/all", response_model=APIResponse[ProductListData])
async def list_products_api(
    db: AsyncSession = Depends(get_db),
    q: str | None = Query(None, description="Search name, category, brand or barcode"),
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    sort_by: str = Query("name", alias="sortBy"),
    sort_dir: str = Query("asc", alias="sortDir"),
):
    data = await list_products(
        db=db,
        q=q,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )
    return success_response("Products fetched successfully", data)


@router.get("/{product_id}", response_model=APIResponse[ProductOut])
async def get_product_api(
    product_id: str,
    db: AsyncSession = Depends(get_db),
):
    product = await get_product(db, parse_id(product_id, "product"))
    return success_response("Product fetched successfully", product)


@router.put("/update/{product_id}", response_model=APIResponse[ProductOut])
async def update_product_api(
    product_id: str,
    payload: ProductUpdate,
    db: AsyncSession = Depends(get_db),
):
    product = await update_product(db, parse_id(product_id, "product"), payload)
    return success_response("Product updated successfully", product)


@router.delete("/delete/{product_id}", response_model=APIResponse[dict])
async def delete_product_api(
    product_id: str,
    db: AsyncSession = Depends(get_db),
):
    await delete_product(db, parse_id(product_id, "product"))
    return success_response("Product deleted successfully")
