from pydantic import BaseModel
from typing import Optional
from decimal import Decimal
from datetime import datetime


class ClientListItem(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class ClientRead(BaseModel):
    id: int
    name: str
    document: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    # Solo pedidos realizados (sin cotizaciones ni cancelados)
    total_spent: Decimal = Decimal("0")
    total_orders: int = 0


class ClientStatistics(BaseModel):
    total_clients: int
    active_clients: int
    inactive_clients: int
    new_clients_last_month: int
    total_income: Decimal


class PriceHistoryEntry(BaseModel):
    order_id: int
    order_code: str
    order_date: Optional[datetime] = None
    order_status: str
    variant_id: int
    variant_name: Optional[str] = None
    sku: str
    quantity: int
    unit_price: Decimal
    list_price: Optional[Decimal] = None
    discount: Decimal
    discount_percent: Decimal
    line_total: Decimal
    currency: Optional[str] = None
