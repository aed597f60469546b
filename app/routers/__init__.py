# app/routers/__init__.py

from .catalog.product_router import router as product_router
from .catalog.bulk_upload_router import router as bulk_upload_router

from .orders.order_router import router as order_router


__all__ = [
"product_router",
"bulk_upload_router",

"order_router",
]
