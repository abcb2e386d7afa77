from typing import Optional, List
from pydantic import BaseModel
from decimal import Decimal
from datetime import datetime


# --- Categorías ---
class CategoryRead(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    sort_order: int
    is_active: bool

    class Config:
        from_attributes = True


# --- Variantes (Input) ---
class VariantInput(BaseModel):
    """
    Una variante tal como llega del cliente. Hay nombres alternos
    (stock / initial_stock, variant_name / variant_type + variant_value);
    services/products.py los normaliza antes de cualquier regla de negocio.
    """
    id: Optional[int] = None  # Con id = actualizar; sin id = crear
    sku: Optional[str] = None
    barcode: Optional[str] = None
    variant_name: Optional[str] = None
    variant_type: Optional[str] = None   # Ej: "Talla"
    variant_value: Optional[str] = None  # Ej: "M"
    initial_stock: Optional[int] = None
    stock: Optional[int] = None
    warehouse_id: Optional[int] = None
    is_active: Optional[bool] = None


# --- Producto Crear/Editar (Input) ---
class ProductCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    sku: Optional[str] = None  # SKU base; las variantes sin SKU usan "{sku}-{n}"
    category_id: Optional[int] = None

    # Se acepta cualquiera de los dos; gana price
    price: Optional[Decimal] = None
    default_price: Optional[Decimal] = None

    currency: Optional[str] = None
    variants: List[VariantInput] = []


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    price: Optional[Decimal] = None
    default_price: Optional[Decimal] = None
    currency: Optional[str] = None
    is_active: Optional[bool] = None

    variants: Optional[List[VariantInput]] = None


# --- Resultados de escritura ---
class CreateProductResult(BaseModel):
    id: int
    name: str
    sku: str
    category: Optional[str] = None
    price: Decimal
    currency: Optional[str] = None
    variants_created: int
    message: str


class UpdateProductResult(BaseModel):
    id: int
    name: str
    sku: str
    category: Optional[str] = None
    price: Decimal
    currency: Optional[str] = None
    is_active: bool
    variants_updated: int
    variants_created: int
    message: str


# --- Producto Lectura (Output) ---
class ProductFilters(BaseModel):
    page: int = 1
    limit: Optional[int] = None
    search: Optional[str] = None
    category_id: Optional[int] = None
    sku: Optional[str] = None
    is_active: Optional[bool] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    has_stock: Optional[bool] = None


class ProductListItem(BaseModel):
    id: int
    name: str
    sku: str
    category: Optional[str] = None
    category_id: Optional[int] = None
    default_price: Decimal
    currency: Optional[str] = None
    total_stock: int
    status: str  # "Activo" / "Inactivo"


class WarehouseStockRead(BaseModel):
    warehouse_id: int
    warehouse_name: str
    qty_on_hand: int
    qty_reserved: int
    qty_available: int


class ProductVariantDetail(BaseModel):
    id: int
    sku: str
    barcode: Optional[str] = None
    variant_name: Optional[str] = None
    stock: int
    reserved: int
    available: int
    status: str  # "Disponible" / "Sin Stock"
    warehouses: List[WarehouseStockRead] = []


class ProductDetail(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    sku: str
    category: str
    category_id: Optional[int] = None
    price: Decimal
    currency: Optional[str] = None
    total_stock: int
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    variants: List[ProductVariantDetail] = []


class ProductStats(BaseModel):
    total_products: int
    active_products: int
    inactive_products: int
    total_stock_on_hand: int
    total_stock_reserved: int
