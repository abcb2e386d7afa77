# distribuidora/routers/products.py
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from distribuidora.container import Services, get_services
from distribuidora.database import get_db
from distribuidora.schemas.products import CategoryRead, ProductCreate, ProductFilters, ProductUpdate

router = APIRouter()


# -----------------------------
# 0. Estadísticas y categorías
# -----------------------------
@router.get("/statistics")
def read_product_statistics(
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return {"success": True, "data": services.products.product_stats(db)}


@router.get("/categories")
def read_categories(
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    categories = services.products.list_categories(db)
    return {"success": True, "data": [CategoryRead.model_validate(c) for c in categories]}


# -----------------------------
# 1. Listar productos
# -----------------------------
@router.get("/")
def read_products(
    page: int = 1,
    limit: Optional[int] = None,
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    sku: Optional[str] = None,
    is_active: Optional[bool] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    has_stock: Optional[bool] = None,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    filters = ProductFilters(
        page=page,
        limit=limit,
        search=search,
        category_id=category_id,
        sku=sku,
        is_active=is_active,
        min_price=min_price,
        max_price=max_price,
        has_stock=has_stock,
    )
    result = services.products.list_products(db, filters)
    return {"success": True, "data": result.data, "pagination": result.pagination}


# -----------------------------
# 2. Detalle
# -----------------------------
@router.get("/{product_id}")
def read_product(
    product_id: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return {"success": True, "data": services.products.product_detail(db, product_id)}


# -----------------------------
# 3. Crear producto (con variantes y stock inicial)
# -----------------------------
@router.post("/", status_code=status.HTTP_201_CREATED)
def create_product(
    prod_in: ProductCreate,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    result = services.products.create_product(db, prod_in)
    return {"success": True, "data": result, "message": result.message}


# -----------------------------
# 4. Editar producto
# -----------------------------
@router.put("/{product_id}")
def update_product(
    product_id: int,
    prod_in: ProductUpdate,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    result = services.products.update_product(db, product_id, prod_in)
    return {"success": True, "data": result, "message": result.message}
