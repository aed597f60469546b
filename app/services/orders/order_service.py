# app/services/orders/order_service.py

from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, asc, desc, or_

from app.models.catalog.product_models import Product, ProductSize
from app.models.orders.order_models import Order, OrderItem
from app.models.enums.payment_status import PaymentStatus
from app.models.base.mixins import utc_now
from app.schemas.orders.order_schemas import (
    OrderCreate,
    OrderUpdate,
    OrderOut,
    OrderAnalytics,
    OrderListData,
)
from app.schemas.orders.invoice_schemas import InvoiceData
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.utils.decimal_utils import ZERO, to_decimal
from app.utils.invoice_builder import ProductTaxInfo, build_invoice_data
from app.utils.pagination import clamp_paging, build_pagination
from app.utils.search import LIKE_ESCAPE, as_record_id, contains_pattern
from app.utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_SORT_FIELDS = {
    "date": Order.date,
    "total": Order.total,
    "profit": Order.profit,
}


def _map_order(order: Order) -> OrderOut:
    return OrderOut.model_validate(order)


async def _get_order_or_404(db: AsyncSession, order_id: int) -> Order:
    order = await db.get(Order, order_id)
    if not order:
        raise AppException(404, "Order not found", ErrorCode.ORDER_NOT_FOUND)
    return order


def _insufficient_stock(product_name: str, size: str, available: int, requested: int) -> AppException:
    return AppException(
        400,
        f"Insufficient stock. Available: {available}, Requested: {requested} "
        f"for {product_name} size {size}",
        ErrorCode.INSUFFICIENT_STOCK,
        details={
            "product": product_name,
            "size": size,
            "available": available,
            "requested": requested,
        },
    )


def _check_discount(discount: Decimal, items_total: Decimal) -> None:
    if discount > items_total:
        raise AppException(
            400,
            "Discount cannot exceed the order total",
            ErrorCode.VALIDATION_ERROR,
            details={"discount": discount, "items_total": items_total},
        )


# =====================================================
# PLACE
# =====================================================
async def place_order(db: AsyncSession, payload: OrderCreate) -> OrderOut:
    if not payload.items:
        raise AppException(400, "Items are required", ErrorCode.ORDER_ITEMS_REQUIRED)

    if payload.payment_status == PaymentStatus.CANCELLED:
        raise AppException(
            400,
            "An order cannot be placed as cancelled",
            ErrorCode.ORDER_INVALID_STATE,
        )

    for item in payload.items:
        if not (item.size or "").strip():
            raise AppException(400, "Size is required for each item", ErrorCode.SIZE_REQUIRED)

    product_ids = {item.product_id for item in payload.items}
    products = {
        p.id: p
        for p in (await db.scalars(select(Product).where(Product.id.in_(product_ids)))).all()
    }

    # -------------------------
    # VALIDATE + PRICE
    # -------------------------
    requested: dict[tuple[int, str], int] = {}
    order_items: list[OrderItem] = []
    total = ZERO
    profit = ZERO

    for item in payload.items:
        size = item.size.strip()
        product = products.get(item.product_id)
        if product is None:
            raise AppException(
                404,
                f"Product {item.product_id} not found",
                ErrorCode.PRODUCT_NOT_FOUND,
            )

        size_row = product.find_size(size)
        if size_row is None:
            raise AppException(
                400,
                f"Size {size} not available for product {product.name}",
                ErrorCode.SIZE_NOT_AVAILABLE,
            )

        # lines repeating a product/size draw from the same stock
        key = (product.id, size)
        requested[key] = requested.get(key, 0) + item.qty
        if size_row.quantity < requested[key]:
            logger.info(
                "Order rejected, insufficient stock",
                extra={"product_id": product.id, "size": size},
            )
            raise _insufficient_stock(product.name, size, size_row.quantity, requested[key])

        # stored price is what the subtotal and the invoice are both derived from
        price = to_decimal(item.price)
        subtotal = to_decimal(price * item.qty)
        total += subtotal
        profit += item.qty * (price - product.wholesale_price)

        order_items.append(
            OrderItem(
                product_id=product.id,
                product_name=product.name,
                product_category=product.category,
                size=size,
                qty=item.qty,
                price=price,
                wholesale_price=product.wholesale_price,
                subtotal=subtotal,
            )
        )

    discount = to_decimal(payload.discount)
    _check_discount(discount, total)
    total -= discount
    profit -= discount

    # -------------------------
    # DEDUCT STOCK (conditional, so concurrent orders cannot oversell)
    # -------------------------
    for (product_id, size), qty in requested.items():
        result = await db.execute(
            update(ProductSize)
            .where(
                ProductSize.product_id == product_id,
                ProductSize.size == size,
                ProductSize.quantity >= qty,
            )
            .values(quantity=ProductSize.quantity - qty)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            product_name = products[product_id].name
            await db.rollback()
            available = await db.scalar(
                select(ProductSize.quantity).where(
                    ProductSize.product_id == product_id,
                    ProductSize.size == size,
                )
            )
            logger.warning(
                "Stock changed during order placement",
                extra={"product_id": product_id, "size": size},
            )
            raise _insufficient_stock(product_name, size, available or 0, qty)

    order = Order(
        date=utc_now(),
        items=order_items,
        total=to_decimal(total),
        profit=to_decimal(profit),
        discount=discount,
        customer_phone=payload.customer_phone or "",
        payment_status=payload.payment_status,
        payment_method=payload.payment_method,
        notes=payload.notes,
    )
    db.add(order)
    await db.commit()

    logger.info(
        "Order placed",
        extra={"order_id": order.id, "total": str(order.total), "lines": len(order_items)},
    )
    return _map_order(order)


# =====================================================
# AMEND
# =====================================================
async def update_order(db: AsyncSession, order_id: int, payload: OrderUpdate) -> OrderOut:
    order = await _get_order_or_404(db, order_id)

    updates = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None
    }
    if not updates:
        raise AppException(400, "No changes detected", ErrorCode.VALIDATION_ERROR)

    new_status = updates.get("payment_status")
    if new_status == PaymentStatus.CANCELLED:
        raise AppException(
            400,
            "Use the cancel endpoint to cancel an order",
            ErrorCode.ORDER_INVALID_STATE,
        )
    if order.payment_status == PaymentStatus.CANCELLED and set(updates) - {"notes"}:
        raise AppException(
            400,
            "Cancelled orders only accept note changes",
            ErrorCode.ORDER_INVALID_STATE,
        )

    if "discount" in updates:
        new_discount = to_decimal(updates.pop("discount"))
        old_discount = to_decimal(order.discount)
        items_total = order.items_total
        _check_discount(new_discount, items_total)

        # discount is a flat deduction from both total and profit
        order.total = to_decimal(items_total - new_discount)
        order.profit = to_decimal(order.profit - (new_discount - old_discount))
        order.discount = new_discount

    for field, value in updates.items():
        setattr(order, field, value)

    await db.commit()

    logger.info(
        "Order updated",
        extra={"order_id": order.id, "fields": sorted(payload.model_fields_set)},
    )
    return _map_order(order)


# =====================================================
# CANCEL
# =====================================================
async def cancel_order(db: AsyncSession, order_id: int) -> OrderOut:
    order = await _get_order_or_404(db, order_id)

    # status flip first: only one concurrent cancel can win it
    result = await db.execute(
        update(Order)
        .where(
            Order.id == order.id,
            Order.payment_status != PaymentStatus.CANCELLED,
        )
        .values(payment_status=PaymentStatus.CANCELLED, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise AppException(400, "Order already cancelled", ErrorCode.ORDER_ALREADY_CANCELLED)

    for item in order.items:
        restored = 0
        if item.product_id is not None:
            restored = (
                await db.execute(
                    update(ProductSize)
                    .where(
                        ProductSize.product_id == item.product_id,
                        ProductSize.size == item.size,
                    )
                    .values(quantity=ProductSize.quantity + item.qty)
                    .execution_options(synchronize_session=False)
                )
            ).rowcount
        if not restored:
            logger.warning(
                "Stock not restored, product or size no longer exists",
                extra={"order_id": order.id, "product_id": item.product_id, "size": item.size},
            )

    await db.commit()
    await db.refresh(order)

    logger.info("Order cancelled", extra={"order_id": order.id})
    return _map_order(order)


# =====================================================
# GET
# =====================================================
async def get_order(db: AsyncSession, order_id: int) -> OrderOut:
    order = await _get_order_or_404(db, order_id)
    return _map_order(order)


# =====================================================
# LIST + ANALYTICS
# =====================================================
def _parse_date_bound(value: str, *, end_of_day: bool) -> datetime:
    value = value.strip()
    try:
        if len(value) == 10:
            day = date.fromisoformat(value)
            parsed = datetime.combine(day, time.max if end_of_day else time.min)
        else:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise AppException(
            400,
            f"Invalid date: {value}",
            ErrorCode.VALIDATION_ERROR,
        )

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


async def list_orders(
    *,
    db: AsyncSession,
    date_from: str | None,
    date_to: str | None,
    payment_status: PaymentStatus | None,
    q: str | None,
    page: int,
    limit: int,
    sort_by: str,
    sort_dir: str,
) -> OrderListData:
    page, page_size = clamp_paging(page, limit)

    # =========================
    # FILTERS
    # =========================
    filters = []
    if date_from:
        filters.append(Order.date >= _parse_date_bound(date_from, end_of_day=False))
    if date_to:
        filters.append(Order.date <= _parse_date_bound(date_to, end_of_day=True))
    if payment_status:
        filters.append(Order.payment_status == payment_status)

    q = (q or "").strip()
    if q:
        pattern = contains_pattern(q)
        matches = [
            Order.customer_phone.ilike(pattern, escape=LIKE_ESCAPE),
            Order.items.any(OrderItem.product_name.ilike(pattern, escape=LIKE_ESCAPE)),
        ]
        order_id = as_record_id(q)
        if order_id is not None:
            matches.append(Order.id == order_id)
        filters.append(or_(*matches))

    # =========================
    # PAGE
    # =========================
    sort_col = ALLOWED_SORT_FIELDS.get(sort_by)
    if sort_col is None:
        sort_col, sort_dir = Order.date, "desc"
    direction = asc if sort_dir == "asc" else desc

    orders = (
        await db.scalars(
            select(Order)
            .where(*filters)
            .order_by(direction(sort_col), direction(Order.id))
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).all()

    total_count = await db.scalar(
        select(func.count()).select_from(select(Order.id).where(*filters).subquery())
    ) or 0

    # =========================
    # ANALYTICS (filtered, unpaginated)
    # =========================
    analytics_filters = list(filters)
    if not payment_status:
        analytics_filters.append(Order.payment_status != PaymentStatus.CANCELLED)

    stats = (
        await db.execute(
            select(
                func.count(Order.id),
                func.sum(Order.total),
                func.sum(Order.profit),
                func.avg(Order.total),
            ).where(*analytics_filters)
        )
    ).one()

    return OrderListData(
        orders=[_map_order(o) for o in orders],
        analytics=OrderAnalytics(
            total_orders=stats[0] or 0,
            total_revenue=to_decimal(stats[1]),
            total_profit=to_decimal(stats[2]),
            avg_order_price=to_decimal(stats[3]),
        ),
        pagination=build_pagination(total_count, page, page_size),
    )


# =====================================================
# INVOICE
# =====================================================
async def get_order_invoice(db: AsyncSession, order_id: int, shop_name: str) -> InvoiceData:
    order = await _get_order_or_404(db, order_id)

    product_ids = {i.product_id for i in order.items if i.product_id is not None}
    rows = []
    if product_ids:
        rows = (
            await db.execute(
                select(Product.id, Product.name, Product.hsn_sac, Product.gst)
                .where(Product.id.in_(product_ids))
            )
        ).all()

    products = {
        r.id: ProductTaxInfo(id=r.id, name=r.name, hsn_sac=r.hsn_sac, gst=r.gst)
        for r in rows
    }
    return build_invoice_data(order, products, shop_name)
