from distribuidora.services.inventory import StockLedger, classify_stock
from distribuidora.services.products import ProductService
from distribuidora.services.orders import OrderWorkflow, ALLOWED_TRANSITIONS
from distribuidora.services.clients import ClientService

__all__ = [
    "StockLedger",
    "classify_stock",
    "ProductService",
    "OrderWorkflow",
    "ALLOWED_TRANSITIONS",
    "ClientService",
]
