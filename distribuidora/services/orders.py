# distribuidora/services/orders.py
import logging
from typing import Dict, FrozenSet, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from distribuidora.config import Settings
from distribuidora.database import transaction
from distribuidora.exceptions import (
    ConcurrentModificationError, InvalidTransitionError, NotFoundError, ValidationError,
)
from distribuidora.models import Order, OrderItem, OrderStatus, OrderStatusCode, User
from distribuidora.schemas.orders import (
    AllowedTransitions, BoardItem, BoardOrder, OrderClientRead, OrderRead,
    StatusColumn, TransitionResult,
)

logger = logging.getLogger(__name__)

S = OrderStatusCode

# Estatus actual -> estatus a los que puede pasar
ALLOWED_TRANSITIONS: Dict[OrderStatusCode, FrozenSet[OrderStatusCode]] = {
    S.COTIZADO: frozenset({S.TRANSMITIDO, S.CANCELADO}),
    S.TRANSMITIDO: frozenset({S.EN_CURSO}),
    S.EN_CURSO: frozenset({S.ENVIADO}),
    S.ENVIADO: frozenset(),
    S.CANCELADO: frozenset({S.COTIZADO}),  # Reabrir una cotización cancelada
}

# Pedidos que no cuentan como venta realizada
NON_REVENUE_STATUSES = (S.COTIZADO.value, S.CANCELADO.value)


def parse_status_code(code) -> OrderStatusCode:
    if isinstance(code, OrderStatusCode):
        return code
    try:
        return OrderStatusCode(str(code).strip().upper())
    except ValueError:
        raise ValidationError(f"Estatus desconocido: '{code}'")


def can_transition(current: OrderStatusCode, requested: OrderStatusCode) -> bool:
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


def allowed_transitions(code) -> List[str]:
    """Siguientes estatus válidos, en el orden del tablero."""
    current = parse_status_code(code)
    order = list(OrderStatusCode)
    return [c.value for c in sorted(ALLOWED_TRANSITIONS[current], key=order.index)]


def compare_and_set_status(
    db: Session,
    order_id: int,
    expected_status_id: int,
    new_status_id: int,
    updated_by_user_id: Optional[int],
) -> None:
    """
    Escribe el nuevo estatus solo si la orden sigue en el estatus leído.
    Si otra transacción ya la movió, no se toca nada.
    """
    rows = (
        db.query(Order)
        .filter(Order.id == order_id, Order.status_id == expected_status_id)
        .update(
            {
                Order.status_id: new_status_id,
                Order.updated_by_user_id: updated_by_user_id,
                Order.updated_at: func.now(),
            },
            synchronize_session=False,
        )
    )
    if rows != 1:
        raise ConcurrentModificationError(
            f"La orden {order_id} fue modificada por otra operación; intente de nuevo"
        )


class OrderWorkflow:
    """Máquina de estados de los pedidos."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _resolve_actor(self, db: Session, user_id: Optional[int]) -> Optional[int]:
        if user_id is None:
            return None
        if db.get(User, user_id) is not None:
            return user_id
        if self.settings.strict_acting_user:
            raise NotFoundError(f"Usuario {user_id} no encontrado")
        logger.warning(
            "Usuario %s no existe; el cambio de estatus queda sin 'actualizado por'", user_id
        )
        return None

    def _status_by_code(self, db: Session, code: OrderStatusCode) -> OrderStatus:
        status = db.query(OrderStatus).filter(OrderStatus.code == code.value).first()
        if status is None:
            raise NotFoundError(f"Estatus {code.value} no configurado")
        return status

    def transition_order_status(
        self,
        db: Session,
        order_id: int,
        new_status_code,
        acting_user_id: Optional[int] = None,
    ) -> TransitionResult:
        requested = parse_status_code(new_status_code)

        with transaction(db):
            # Lectura con bloqueo de la fila (no-op en SQLite)
            order = (
                db.query(Order)
                .filter(Order.id == order_id)
                .with_for_update()
                .first()
            )
            if order is None:
                raise NotFoundError("Orden no encontrada")

            current_status = db.get(OrderStatus, order.status_id)
            current = parse_status_code(current_status.code)
            if not can_transition(current, requested):
                raise InvalidTransitionError(current.value, requested.value)

            target = self._status_by_code(db, requested)
            actor_id = self._resolve_actor(db, acting_user_id)

            compare_and_set_status(db, order.id, current_status.id, target.id, actor_id)

        logger.info(
            "Orden %s: %s -> %s (usuario=%s)",
            order_id, current.value, requested.value, actor_id,
        )

        order = (
            db.query(Order)
            .populate_existing()
            .options(joinedload(Order.status), joinedload(Order.client))
            .filter(Order.id == order_id)
            .one()
        )
        return TransitionResult(
            message="Estado de la orden actualizado correctamente",
            order=OrderRead.model_validate(order),
        )

    def allowed_transitions(self, code) -> List[str]:
        return allowed_transitions(code)

    def order_transitions(self, db: Session, order_id: int) -> AllowedTransitions:
        order = (
            db.query(Order)
            .options(joinedload(Order.status))
            .filter(Order.id == order_id)
            .first()
        )
        if order is None:
            raise NotFoundError("Orden no encontrada")
        return AllowedTransitions(
            order_id=order.id,
            current=order.status.code,
            allowed=allowed_transitions(order.status.code),
        )

    def order_board(self, db: Session) -> List[StatusColumn]:
        """Tablero: cada estatus activo con sus pedidos (más recientes primero)."""
        statuses = (
            db.query(OrderStatus)
            .filter(OrderStatus.is_active.is_(True))
            .order_by(OrderStatus.sort_order.asc())
            .all()
        )
        orders = (
            db.query(Order)
            .options(
                joinedload(Order.client),
                selectinload(Order.items).joinedload(OrderItem.variant),
            )
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )

        by_status: Dict[int, List[Order]] = {}
        for order in orders:
            by_status.setdefault(order.status_id, []).append(order)

        columns = []
        for status in statuses:
            column_orders = by_status.get(status.id, [])
            columns.append(StatusColumn(
                status_id=status.id,
                status_code=status.code,
                status_label=status.label,
                order_count=len(column_orders),
                orders=[
                    BoardOrder(
                        id=o.id,
                        code=o.code,
                        client=OrderClientRead.model_validate(o.client),
                        total=o.total,
                        currency=o.currency,
                        created_at=o.created_at,
                        items=[
                            BoardItem(
                                id=item.id,
                                variant_id=item.variant_id,
                                sku=item.variant.sku,
                                variant_name=item.variant.variant_name,
                                qty=item.qty,
                                unit_price=item.unit_price,
                                line_total=item.line_total,
                                description=item.description,
                            )
                            for item in o.items
                        ],
                    )
                    for o in column_orders
                ],
            ))
        return columns
