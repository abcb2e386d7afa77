# distribuidora/routers/orders.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from distribuidora.container import Services, get_services
from distribuidora.database import get_db
from distribuidora.schemas.orders import StatusChange

router = APIRouter()


@router.get("/")
def read_order_board(
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Pedidos agrupados por estatus, en el orden del flujo."""
    return {"success": True, "data": services.orders.order_board(db)}


@router.get("/{order_id}/transitions")
def read_order_transitions(
    order_id: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return {"success": True, "data": services.orders.order_transitions(db, order_id)}


@router.put("/change-status/{order_id}")
def change_order_status(
    order_id: int,
    change: StatusChange,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    result = services.orders.transition_order_status(
        db, order_id, change.new_status_code, acting_user_id=change.user_id
    )
    return {"success": True, "data": result.order, "message": result.message}
