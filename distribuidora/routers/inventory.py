# distribuidora/routers/inventory.py
import io
from typing import Optional

import pandas as pd
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from distribuidora.container import Services, get_services
from distribuidora.database import get_db
from distribuidora.schemas.inventory import StockRead, StockUpdate

router = APIRouter()


@router.get("/summary")
def read_inventory_summary(
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Tarjetas superiores: productos, stock total, renglones bajos y valor del inventario."""
    return {"success": True, "data": services.ledger.inventory_summary(db)}


@router.get("/")
def read_inventory(
    search: Optional[str] = None,
    stock_status: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    result = services.ledger.inventory_list(
        db, search=search, stock_status=stock_status, page=page, limit=limit
    )
    return {"success": True, "data": result.data, "pagination": result.pagination}


@router.get("/low-stock")
def read_low_stock(
    threshold: Optional[int] = None,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return {"success": True, "data": services.ledger.low_stock_items(db, threshold)}


# -----------------------------
# Exportar Excel
# -----------------------------
@router.get("/export/excel")
def export_inventory_excel(
    search: Optional[str] = None,
    stock_status: Optional[str] = None,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    items = services.ledger.inventory_lines(db, search=search, stock_status=stock_status)

    data = [
        {
            "SKU": item.sku,
            "Producto": item.name,
            "Variante": item.variant_name or "",
            "Categoría": item.category,
            "Precio": float(item.price),
            "Moneda": item.currency or "",
            "Existencia": item.stock,
            "Reservado": item.reserved,
            "Disponible": item.available,
            "Estado": item.stock_status_label,
        }
        for item in items
    ]
    df = pd.DataFrame(data, columns=[
        "SKU", "Producto", "Variante", "Categoría", "Precio", "Moneda",
        "Existencia", "Reservado", "Disponible", "Estado",
    ])

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Inventario")
    output.seek(0)

    headers = {"Content-Disposition": 'attachment; filename="inventario.xlsx"'}
    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers,
    )


@router.put("/stock")
def update_stock(
    data: StockUpdate,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Ajuste manual de existencias; los campos omitidos no se tocan."""
    stock = services.ledger.update_stock(db, data)
    return {
        "success": True,
        "data": StockRead.model_validate(stock),
        "message": "Stock actualizado correctamente",
    }


@router.get("/{variant_id}")
def read_inventory_detail(
    variant_id: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return {"success": True, "data": services.ledger.inventory_detail(db, variant_id)}
