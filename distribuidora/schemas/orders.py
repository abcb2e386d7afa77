from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal
from datetime import datetime


# --- Input ---
class StatusChange(BaseModel):
    new_status_code: str
    user_id: Optional[int] = None  # Usuario que hace el cambio (auditoría)


# --- Lectura ---
class OrderStatusRead(BaseModel):
    id: int
    code: str
    label: str
    sort_order: int

    class Config:
        from_attributes = True


class OrderClientRead(BaseModel):
    id: int
    name: str
    document: Optional[str] = None

    class Config:
        from_attributes = True


class OrderRead(BaseModel):
    id: int
    code: str
    client: OrderClientRead
    status: OrderStatusRead
    currency: Optional[str] = None
    subtotal: Decimal
    total: Decimal
    notes: Optional[str] = None
    created_by_user_id: Optional[int] = None
    updated_by_user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransitionResult(BaseModel):
    message: str
    order: OrderRead


class AllowedTransitions(BaseModel):
    order_id: int
    current: str
    allowed: List[str]


# --- Tablero por estatus ---
class BoardItem(BaseModel):
    id: int
    variant_id: int
    sku: str
    variant_name: Optional[str] = None
    qty: int
    unit_price: Decimal
    line_total: Decimal
    description: Optional[str] = None


class BoardOrder(BaseModel):
    id: int
    code: str
    client: OrderClientRead
    total: Decimal
    currency: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[BoardItem] = []


class StatusColumn(BaseModel):
    status_id: int
    status_code: str
    status_label: str
    order_count: int
    orders: List[BoardOrder] = []
