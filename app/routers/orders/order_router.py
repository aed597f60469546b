# app/routers/orders/order_router.py

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import SHOP_NAME
from app.core.db import get_db
from app.models.enums.payment_status import PaymentStatus
from app.schemas.orders.order_schemas import (
    OrderCreate,
    OrderUpdate,
    OrderOut,
    OrderListData,
)
from app.schemas.orders.invoice_schemas import InvoiceData
from app.services.orders.order_service import (
    place_order,
    update_order,
    cancel_order,
    list_orders,
    get_order,
    get_order_invoice,
)
from app.utils.get_user import get_current_operator
from app.utils.ids import parse_id
from app.utils.pagination import DEFAULT_PAGE_SIZE
from app.utils.pdf_generators.invoice_pdf import render_invoice_pdf
from app.utils.response import APIResponse, success_response

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    dependencies=[Depends(get_current_operator)],
)


@router.post(
    "",
    response_model=APIResponse[OrderOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_order_api(
    payload: OrderCreate,
    db: AsyncSession = Depends(get_db),
):
    order = await place_order(db, payload)
    return success_response("Order created successfully", order)


@router.get("", response_model=APIResponse[OrderListData])
async def list_orders_api(
    db: AsyncSession = Depends(get_db),
    date_from: str | None = Query(None, alias="from", description="YYYY-MM-DD or ISO datetime"),
    date_to: str | None = Query(None, alias="to", description="YYYY-MM-DD or ISO datetime, inclusive"),
    payment_status: PaymentStatus | None = Query(None, alias="paymentStatus"),
    q: str | None = Query(None, description="Customer phone, product name or order id"),
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    sort_by: str = Query("date", alias="sortBy"),
    sort_dir: str = Query("desc", alias="sortDir"),
):
    data = await list_orders(
        db=db,
        date_from=date_from,
        date_to=date_to,
        payment_status=payment_status,
        q=q,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )
    return success_response("Orders fetched successfully", data)


@router.get("/{order_id}", response_model=APIResponse[OrderOut])
async def get_order_api(
    order_id: str,
    db: AsyncSession = Depends(get_db),
):
    order = await get_order(db, parse_id(order_id, "order"))
    return success_response("Order fetched successfully", order)


@router.put("/{order_id}", response_model=APIResponse[OrderOut])
async def update_order_api(
    order_id: str,
    payload: OrderUpdate,
    db: AsyncSession = Depends(get_db),
):
    order = await update_order(db, parse_id(order_id, "order"), payload)
    return success_response("Order updated successfully", order)


@router.put("/{order_id}/cancel", response_model=APIResponse[OrderOut])
async def cancel_order_api(
    order_id: str,
    db: AsyncSession = Depends(get_db),
):
    order = await cancel_order(db, parse_id(order_id, "order"))
    return success_response("Order cancelled and inventory restored", order)


@router.get("/{order_id}/invoice", response_model=APIResponse[InvoiceData])
async def get_invoice_api(
    order_id: str,
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_order_invoice(db, parse_id(order_id, "order"), SHOP_NAME)
    return success_response("Invoice generated successfully", invoice)


@router.get("/{order_id}/invoice/pdf")
async def get_invoice_pdf_api(
    order_id: str,
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_order_invoice(db, parse_id(order_id, "order"), SHOP_NAME)
    return Response(
        content=render_invoice_pdf(invoice),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="Invoice_{invoice.invoice.id}.pdf"'},
    )
