# Catalog
from app.models.catalog.product_models import Product, ProductSize
from app.models.catalog.upload_batch_models import UploadBatch, QuantityChange

# Orders
from app.models.orders.order_models import Order, OrderItem
