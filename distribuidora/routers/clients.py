# distribuidora/routers/clients.py
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from distribuidora.container import Services, get_services
from distribuidora.database import get_db

router = APIRouter()


# --------------------------------------------------------------------------
# 1. LISTAR CLIENTES
# --------------------------------------------------------------------------
@router.get("/")
def read_clients(
    page: int = 1,
    limit: Optional[int] = None,
    search: Optional[str] = None,  # Nombre o documento
    active: bool = False,
    inactive: bool = False,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    result = services.clients.list_clients(
        db, page=page, limit=limit, search=search, active=active, inactive=inactive
    )
    return {"success": True, "data": result.data, "pagination": result.pagination}


# Para selects del frontend: solo id y nombre
@router.get("/all")
def read_active_clients(
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return {"success": True, "data": services.clients.active_clients(db)}


@router.get("/statistics")
def read_client_statistics(
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return {"success": True, "data": services.clients.client_statistics(db)}


# --------------------------------------------------------------------------
# 2. HISTORIAL DE PRECIOS (cliente x producto)
# --------------------------------------------------------------------------
@router.get("/{client_id}/price-history/{product_id}")
def read_price_history(
    client_id: int,
    product_id: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return {"success": True, "data": services.clients.price_history(db, client_id, product_id)}


# --------------------------------------------------------------------------
# 3. DETALLE
# --------------------------------------------------------------------------
@router.get("/{client_id}")
def read_client(
    client_id: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return {"success": True, "data": services.clients.client_detail(db, client_id)}
