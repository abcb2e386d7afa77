# distribuidora/services/clients.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from distribuidora.config import Settings
from distribuidora.exceptions import NotFoundError
from distribuidora.models import Client, Order, OrderItem, OrderStatus, ProductVariant
from distribuidora.schemas.clients import (
    ClientListItem, ClientRead, ClientStatistics, PriceHistoryEntry,
)
from distribuidora.schemas.common import Paginated
from distribuidora.services.orders import NON_REVENUE_STATUSES
from distribuidora.utils.pagination import build_pagination, clamp_page

ZERO = Decimal("0")


def compute_discount(list_price: Optional[Decimal], unit_price: Decimal) -> Tuple[Decimal, Decimal]:
    """(descuento, % de descuento). Sin precio de lista (o en 0) no hay descuento."""
    if list_price is None or list_price == 0:
        return ZERO, ZERO
    discount = Decimal(list_price) - Decimal(unit_price)
    percent = discount / Decimal(list_price) * 100
    return discount, percent


def _revenue_orders(query):
    """Filtra a pedidos realizados: fuera cotizaciones y cancelados."""
    return query.join(OrderStatus, Order.status_id == OrderStatus.id).filter(
        OrderStatus.code.notin_(NON_REVENUE_STATUSES)
    )


class ClientService:
    """Consultas de clientes: totales, estadísticas e historial de precios."""

    def __init__(self, settings: Settings):
        self.settings = settings

    # -----------------------------
    # Totales por cliente
    # -----------------------------
    def total_spent(self, db: Session, client_id: int) -> Decimal:
        query = (
            db.query(func.coalesce(func.sum(OrderItem.line_total), 0))
            .select_from(OrderItem)
            .join(Order, OrderItem.order_id == Order.id)
            .filter(Order.client_id == client_id)
        )
        return Decimal(str(_revenue_orders(query).scalar() or 0))

    def order_count(self, db: Session, client_id: int) -> int:
        query = (
            db.query(func.count(Order.id))
            .select_from(Order)
            .filter(Order.client_id == client_id)
        )
        return _revenue_orders(query).scalar() or 0

    def _totals_for(self, db: Session, client_ids: List[int]) -> Tuple[Dict[int, Decimal], Dict[int, int]]:
        if not client_ids:
            return {}, {}

        spent_rows = _revenue_orders(
            db.query(Order.client_id, func.sum(OrderItem.line_total))
            .select_from(OrderItem)
            .join(Order, OrderItem.order_id == Order.id)
            .filter(Order.client_id.in_(client_ids))
        ).group_by(Order.client_id).all()

        count_rows = _revenue_orders(
            db.query(Order.client_id, func.count(Order.id))
            .select_from(Order)
            .filter(Order.client_id.in_(client_ids))
        ).group_by(Order.client_id).all()

        spent = {cid: Decimal(str(total or 0)) for cid, total in spent_rows}
        counts = {cid: n for cid, n in count_rows}
        return spent, counts

    @staticmethod
    def _to_read(client: Client, spent: Decimal, orders: int) -> ClientRead:
        return ClientRead(
            id=client.id,
            name=client.name,
            document=client.document,
            is_active=client.is_active,
            created_at=client.created_at,
            total_spent=spent,
            total_orders=orders,
        )

    # -----------------------------
    # Listados
    # -----------------------------
    def list_clients(
        self,
        db: Session,
        page: Optional[int] = 1,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        active: bool = False,
        inactive: bool = False,
    ) -> Paginated[ClientRead]:
        page, limit = clamp_page(page, limit, self.settings)
        query = db.query(Client)

        if search and search.strip():
            s = f"%{search.strip()}%"
            query = query.filter(or_(Client.name.ilike(s), Client.document.ilike(s)))

        # Si llegan ambos, manda el de inactivos
        if inactive:
            query = query.filter(Client.is_active.is_(False))
        elif active:
            query = query.filter(Client.is_active.is_(True))

        total = query.count()
        clients = (
            query.order_by(Client.name.asc(), Client.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        spent, counts = self._totals_for(db, [c.id for c in clients])
        data = [self._to_read(c, spent.get(c.id, ZERO), counts.get(c.id, 0)) for c in clients]
        return Paginated[ClientRead](data=data, pagination=build_pagination(total, page, limit))

    def active_clients(self, db: Session) -> List[ClientListItem]:
        clients = (
            db.query(Client)
            .filter(Client.is_active.is_(True))
            .order_by(Client.name.asc())
            .all()
        )
        return [ClientListItem.model_validate(c) for c in clients]

    def client_detail(self, db: Session, client_id: int) -> ClientRead:
        client = db.get(Client, client_id)
        if client is None:
            raise NotFoundError("Cliente no encontrado")
        return self._to_read(client, self.total_spent(db, client_id), self.order_count(db, client_id))

    def client_statistics(self, db: Session) -> ClientStatistics:
        total = db.query(func.count(Client.id)).scalar() or 0
        active = db.query(func.count(Client.id)).filter(Client.is_active.is_(True)).scalar() or 0

        since = datetime.now(timezone.utc) - timedelta(days=30)
        new_clients = db.query(func.count(Client.id)).filter(Client.created_at >= since).scalar() or 0

        income = _revenue_orders(
            db.query(func.coalesce(func.sum(OrderItem.line_total), 0))
            .select_from(OrderItem)
            .join(Order, OrderItem.order_id == Order.id)
        ).scalar()

        return ClientStatistics(
            total_clients=total,
            active_clients=active,
            inactive_clients=total - active,
            new_clients_last_month=new_clients,
            total_income=Decimal(str(income or 0)),
        )

    # -----------------------------
    # Historial de precios
    # -----------------------------
    def price_history(self, db: Session, client_id: int, product_id: int) -> List[PriceHistoryEntry]:
        """Todos los renglones del cliente para ese producto, el pedido más reciente primero."""
        if db.get(Client, client_id) is None:
            raise NotFoundError("Cliente no encontrado")

        rows = (
            db.query(OrderItem, Order, OrderStatus, ProductVariant)
            .join(Order, OrderItem.order_id == Order.id)
            .join(OrderStatus, Order.status_id == OrderStatus.id)
            .join(ProductVariant, OrderItem.variant_id == ProductVariant.id)
            .filter(Order.client_id == client_id, ProductVariant.product_id == product_id)
            .order_by(Order.created_at.desc(), Order.id.desc(), OrderItem.id.asc())
            .all()
        )

        history = []
        for item, order, status, variant in rows:
            discount, percent = compute_discount(item.list_price, item.unit_price)
            history.append(PriceHistoryEntry(
                order_id=order.id,
                order_code=order.code,
                order_date=order.created_at,
                order_status=status.label,
                variant_id=variant.id,
                variant_name=variant.variant_name,
                sku=variant.sku,
                quantity=item.qty,
                unit_price=item.unit_price,
                list_price=item.list_price,
                discount=discount,
                discount_percent=percent,
                line_total=item.line_total,
                currency=item.currency or order.currency,
            ))
        return history
