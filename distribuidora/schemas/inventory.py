from pydantic import BaseModel
from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from enum import Enum


class StockStatus(str, Enum):
    """Clasificación derivada; nunca se guarda."""
    IN_STOCK = "in-stock"
    LOW_STOCK = "low-stock"
    OUT_OF_STOCK = "out-of-stock"

    @property
    def label(self) -> str:
        return _STOCK_LABELS[self]


_STOCK_LABELS = {
    StockStatus.IN_STOCK: "En Stock",
    StockStatus.LOW_STOCK: "Stock Bajo",
    StockStatus.OUT_OF_STOCK: "Sin Stock",
}


# Input para ajustar existencias de una variante en un almacén
class StockUpdate(BaseModel):
    variant_id: int
    warehouse_id: int
    qty_on_hand: Optional[int] = None  # Omitido = no se toca
    qty_reserved: Optional[int] = None


class StockRead(BaseModel):
    id: int
    variant_id: int
    warehouse_id: int
    qty_on_hand: int
    qty_reserved: int
    qty_available: int
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InventorySummary(BaseModel):
    total_products: int
    stock_total: int
    low_stock_count: int
    inventory_value: Decimal


class WarehouseLine(BaseModel):
    warehouse_id: int
    warehouse_name: str
    qty_on_hand: int
    qty_reserved: int


class InventoryItem(BaseModel):
    id: int  # id de la variante
    product_id: int
    name: str
    description: Optional[str] = None
    variant_name: Optional[str] = None
    sku: str
    barcode: Optional[str] = None
    category: str
    stock: int
    reserved: int
    available: int
    stock_status: StockStatus
    stock_status_label: str
    price: Decimal
    currency: Optional[str] = None
    is_active: bool
    warehouses: List[WarehouseLine] = []


class InventoryProductRef(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    default_price: Decimal
    currency: Optional[str] = None


class InventoryVariantRef(BaseModel):
    sku: str
    barcode: Optional[str] = None
    variant_name: Optional[str] = None


class WarehouseAvailability(WarehouseLine):
    qty_available: int


class InventoryDetail(BaseModel):
    id: int
    product: InventoryProductRef
    variant: InventoryVariantRef
    total_stock: int
    total_reserved: int
    available: int
    stock_status: StockStatus
    stock_by_warehouse: List[WarehouseAvailability] = []
