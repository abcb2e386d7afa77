# distribuidora/services/inventory.py
import logging
from decimal import Decimal
from typing import List, Optional, Union

from sqlalchemy import func, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from distribuidora.config import Settings
from distribuidora.database import transaction
from distribuidora.exceptions import NotFoundError, NoWarehouseError, ValidationError
from distribuidora.models import InventoryStock, Product, ProductVariant, Warehouse
from distribuidora.schemas.common import Paginated
from distribuidora.schemas.inventory import (
    InventoryDetail, InventoryItem, InventoryProductRef, InventorySummary,
    InventoryVariantRef, StockStatus, StockUpdate, WarehouseAvailability, WarehouseLine,
)
from distribuidora.utils.pagination import build_pagination, clamp_page

logger = logging.getLogger(__name__)

# Dialectos con INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def classify_stock(quantity: int, threshold: int) -> StockStatus:
    """0 = sin stock, 1..threshold-1 = stock bajo, threshold o más = en stock."""
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if quantity < threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def parse_stock_status(value: Union[str, StockStatus, None]) -> Optional[StockStatus]:
    """None / "" / "all" = sin filtro."""
    if value is None or isinstance(value, StockStatus):
        return value
    value = value.strip().lower()
    if value in ("", "all"):
        return None
    try:
        return StockStatus(value)
    except ValueError:
        raise ValidationError(f"Estado de stock inválido: '{value}'")


class StockLedger:
    """
    Existencias por variante y almacén.

    Las escrituras (upsert_stock) no hacen commit: corren dentro de la
    transacción de quien las llama. update_stock es la operación completa
    que sí confirma.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def low_stock_threshold(self) -> int:
        return self.settings.low_stock_threshold

    def classify(self, quantity: int) -> StockStatus:
        return classify_stock(quantity, self.low_stock_threshold)

    # -----------------------------
    # Almacenes
    # -----------------------------
    def default_warehouse(self, db: Session) -> Warehouse:
        warehouse = (
            db.query(Warehouse)
            .filter(Warehouse.is_active.is_(True))
            .order_by(Warehouse.id.asc())
            .first()
        )
        if warehouse is None:
            raise NoWarehouseError()
        return warehouse

    def resolve_warehouse(self, db: Session, warehouse_id: Optional[int]) -> int:
        """El almacén pedido si existe; si no se indicó, el almacén por defecto."""
        if warehouse_id is None:
            return self.default_warehouse(db).id
        if db.get(Warehouse, warehouse_id) is None:
            raise NotFoundError(f"Almacén {warehouse_id} no encontrado")
        return warehouse_id

    # -----------------------------
    # Escrituras
    # -----------------------------
    @staticmethod
    def _check_quantities(qty_on_hand: Optional[int], qty_reserved: Optional[int]) -> None:
        if qty_on_hand is not None and qty_on_hand < 0:
            raise ValidationError("La existencia (qty_on_hand) no puede ser negativa")
        if qty_reserved is not None and qty_reserved < 0:
            raise ValidationError("Las unidades reservadas no pueden ser negativas")
        if qty_on_hand is not None and qty_reserved is not None and qty_reserved > qty_on_hand:
            raise ValidationError("Las unidades reservadas no pueden exceder la existencia")

    def upsert_stock(
        self,
        db: Session,
        variant_id: int,
        warehouse_id: int,
        qty_on_hand: Optional[int] = None,
        qty_reserved: Optional[int] = None,
    ) -> InventoryStock:
        """
        Crea el renglón (variante, almacén) con los campos omitidos en 0, o
        actualiza solo los campos indicados. Es una sola sentencia atómica
        donde el dialecto lo permite.
        """
        self._check_quantities(qty_on_hand, qty_reserved)

        # autoflush está apagado: lo pendiente de la sesión va antes del upsert
        db.flush()

        insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)
        try:
            if insert is not None:
                stmt = insert(InventoryStock.__table__).values(
                    variant_id=variant_id,
                    warehouse_id=warehouse_id,
                    qty_on_hand=qty_on_hand or 0,
                    qty_reserved=qty_reserved or 0,
                )
                changes = {"updated_at": func.now()}
                if qty_on_hand is not None:
                    changes["qty_on_hand"] = stmt.excluded.qty_on_hand
                if qty_reserved is not None:
                    changes["qty_reserved"] = stmt.excluded.qty_reserved
                stmt = stmt.on_conflict_do_update(
                    index_elements=["variant_id", "warehouse_id"],
                    set_=changes,
                )
                db.execute(stmt)
            else:
                self._locked_upsert(db, variant_id, warehouse_id, qty_on_hand, qty_reserved)
        except IntegrityError as exc:
            if "ck_inventory_stock" in str(exc.orig):
                raise ValidationError("Las unidades reservadas no pueden exceder la existencia") from exc
            raise

        stock = (
            db.query(InventoryStock)
            .populate_existing()
            .filter(
                InventoryStock.variant_id == variant_id,
                InventoryStock.warehouse_id == warehouse_id,
            )
            .one()
        )
        if stock.qty_reserved > stock.qty_on_hand:
            raise ValidationError("Las unidades reservadas no pueden exceder la existencia")
        return stock

    def _locked_upsert(self, db, variant_id, warehouse_id, qty_on_hand, qty_reserved):
        stock = (
            db.query(InventoryStock)
            .filter(
                InventoryStock.variant_id == variant_id,
                InventoryStock.warehouse_id == warehouse_id,
            )
            .with_for_update()
            .first()
        )
        if stock is None:
            stock = InventoryStock(
                variant_id=variant_id,
                warehouse_id=warehouse_id,
                qty_on_hand=qty_on_hand or 0,
                qty_reserved=qty_reserved or 0,
            )
            db.add(stock)
        else:
            if qty_on_hand is not None:
                stock.qty_on_hand = qty_on_hand
            if qty_reserved is not None:
                stock.qty_reserved = qty_reserved
        db.flush()

    def update_stock(self, db: Session, data: StockUpdate) -> InventoryStock:
        """Ajuste manual de existencias de una variante en un almacén."""
        if db.get(ProductVariant, data.variant_id) is None:
            raise NotFoundError(f"Variante {data.variant_id} no encontrada")
        if db.get(Warehouse, data.warehouse_id) is None:
            raise NotFoundError(f"Almacén {data.warehouse_id} no encontrado")

        with transaction(db):
            stock = self.upsert_stock(
                db,
                data.variant_id,
                data.warehouse_id,
                qty_on_hand=data.qty_on_hand,
                qty_reserved=data.qty_reserved,
            )

        logger.info(
            "Stock actualizado: variante=%s almacén=%s on_hand=%s reserved=%s",
            stock.variant_id, stock.warehouse_id, stock.qty_on_hand, stock.qty_reserved,
        )
        return stock

    # -----------------------------
    # Totales por variante
    # -----------------------------
    def total_stock(self, db: Session, variant_id: int) -> int:
        total = (
            db.query(func.coalesce(func.sum(InventoryStock.qty_on_hand), 0))
            .filter(InventoryStock.variant_id == variant_id)
            .scalar()
        )
        return int(total)

    def total_reserved(self, db: Session, variant_id: int) -> int:
        total = (
            db.query(func.coalesce(func.sum(InventoryStock.qty_reserved), 0))
            .filter(InventoryStock.variant_id == variant_id)
            .scalar()
        )
        return int(total)

    def availability(self, db: Session, variant_id: int) -> int:
        return self.total_stock(db, variant_id) - self.total_reserved(db, variant_id)

    # -----------------------------
    # Resumen (tarjetas superiores)
    # -----------------------------
    def inventory_summary(self, db: Session) -> InventorySummary:
        total_products = (
            db.query(func.count(Product.id))
            .filter(Product.is_active.is_(True))
            .scalar()
        )
        stock_total = db.query(func.coalesce(func.sum(InventoryStock.qty_on_hand), 0)).scalar()

        # Renglones (variante, almacén) por debajo del umbral
        low_stock_count = (
            db.query(func.count(InventoryStock.id))
            .filter(InventoryStock.qty_on_hand < self.low_stock_threshold)
            .scalar()
        )

        inventory_value = (
            db.query(func.coalesce(func.sum(Product.default_price * InventoryStock.qty_on_hand), 0))
            .select_from(Product)
            .join(ProductVariant, ProductVariant.product_id == Product.id)
            .join(InventoryStock, InventoryStock.variant_id == ProductVariant.id)
            .filter(Product.is_active.is_(True), ProductVariant.is_active.is_(True))
            .scalar()
        )

        return InventorySummary(
            total_products=total_products or 0,
            stock_total=int(stock_total),
            low_stock_count=low_stock_count or 0,
            inventory_value=Decimal(str(inventory_value or 0)),
        )

    # -----------------------------
    # Listado por variante
    # -----------------------------
    def _variant_lines(self, db: Session, search: Optional[str], stock_status: Optional[StockStatus]):
        totals = (
            db.query(
                InventoryStock.variant_id.label("variant_id"),
                func.sum(InventoryStock.qty_on_hand).label("on_hand"),
                func.sum(InventoryStock.qty_reserved).label("reserved"),
            )
            .group_by(InventoryStock.variant_id)
            .subquery()
        )
        on_hand = func.coalesce(totals.c.on_hand, 0)
        reserved = func.coalesce(totals.c.reserved, 0)

        query = (
            db.query(ProductVariant, on_hand.label("on_hand"), reserved.label("reserved"))
            .join(Product, ProductVariant.product_id == Product.id)
            .outerjoin(totals, totals.c.variant_id == ProductVariant.id)
            .filter(Product.is_active.is_(True), ProductVariant.is_active.is_(True))
        )

        if search and search.strip():
            s = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Product.name.ilike(s),
                    Product.description.ilike(s),
                    ProductVariant.sku.ilike(s),
                )
            )

        if stock_status is StockStatus.OUT_OF_STOCK:
            query = query.filter(on_hand <= 0)
        elif stock_status is StockStatus.LOW_STOCK:
            query = query.filter(on_hand > 0, on_hand < self.low_stock_threshold)
        elif stock_status is StockStatus.IN_STOCK:
            query = query.filter(on_hand >= self.low_stock_threshold)

        return query

    @staticmethod
    def _with_details(query):
        return query.options(
            joinedload(ProductVariant.product).joinedload(Product.category),
            selectinload(ProductVariant.stocks).joinedload(InventoryStock.warehouse),
        ).order_by(Product.created_at.desc(), Product.id.desc(), ProductVariant.id.asc())

    def _to_item(self, variant: ProductVariant, on_hand, reserved) -> InventoryItem:
        product = variant.product
        on_hand, reserved = int(on_hand), int(reserved)
        status = self.classify(on_hand)
        return InventoryItem(
            id=variant.id,
            product_id=product.id,
            name=product.name,
            description=product.description,
            variant_name=variant.variant_name,
            sku=variant.sku,
            barcode=variant.barcode,
            category=product.category.name if product.category else "Sin categoría",
            stock=on_hand,
            reserved=reserved,
            available=on_hand - reserved,
            stock_status=status,
            stock_status_label=status.label,
            price=product.default_price,
            currency=product.currency,
            is_active=variant.is_active,
            warehouses=[
                WarehouseLine(
                    warehouse_id=s.warehouse.id,
                    warehouse_name=s.warehouse.name,
                    qty_on_hand=s.qty_on_hand,
                    qty_reserved=s.qty_reserved,
                )
                for s in variant.stocks
            ],
        )

    def inventory_list(
        self,
        db: Session,
        search: Optional[str] = None,
        stock_status: Union[str, StockStatus, None] = None,
        page: Optional[int] = 1,
        limit: Optional[int] = None,
    ) -> Paginated[InventoryItem]:
        """Una línea por variante activa, con estado de stock calculado al vuelo."""
        status = parse_stock_status(stock_status)
        page, limit = clamp_page(page, limit, self.settings)

        query = self._variant_lines(db, search, status)
        total = query.count()
        rows = self._with_details(query).offset((page - 1) * limit).limit(limit).all()

        return Paginated[InventoryItem](
            data=[self._to_item(v, on_hand, reserved) for v, on_hand, reserved in rows],
            pagination=build_pagination(total, page, limit),
        )

    def inventory_lines(
        self,
        db: Session,
        search: Optional[str] = None,
        stock_status: Union[str, StockStatus, None] = None,
    ) -> List[InventoryItem]:
        """Igual que inventory_list pero sin paginar (exportaciones)."""
        query = self._variant_lines(db, search, parse_stock_status(stock_status))
        return [self._to_item(v, on_hand, reserved) for v, on_hand, reserved in self._with_details(query).all()]

    def low_stock_items(self, db: Session, threshold: Optional[int] = None) -> List[InventoryItem]:
        if threshold is None:
            threshold = self.low_stock_threshold
        items = self.inventory_lines(db)
        return [item for item in items if classify_stock(item.stock, threshold) is StockStatus.LOW_STOCK]

    def inventory_detail(self, db: Session, variant_id: int) -> InventoryDetail:
        variant = (
            db.query(ProductVariant)
            .options(
                joinedload(ProductVariant.product),
                selectinload(ProductVariant.stocks).joinedload(InventoryStock.warehouse),
            )
            .filter(ProductVariant.id == variant_id)
            .first()
        )
        if variant is None:
            raise NotFoundError(f"Variante {variant_id} no encontrada")

        total_stock = sum(s.qty_on_hand for s in variant.stocks)
        total_reserved = sum(s.qty_reserved for s in variant.stocks)
        product = variant.product

        return InventoryDetail(
            id=variant.id,
            product=InventoryProductRef(
                id=product.id,
                name=product.name,
                description=product.description,
                default_price=product.default_price,
                currency=product.currency,
            ),
            variant=InventoryVariantRef(
                sku=variant.sku,
                barcode=variant.barcode,
                variant_name=variant.variant_name,
            ),
            total_stock=total_stock,
            total_reserved=total_reserved,
            available=total_stock - total_reserved,
            stock_status=self.classify(total_stock),
            stock_by_warehouse=[
                WarehouseAvailability(
                    warehouse_id=s.warehouse.id,
                    warehouse_name=s.warehouse.name,
                    qty_on_hand=s.qty_on_hand,
                    qty_reserved=s.qty_reserved,
                    qty_available=s.qty_available,
                )
                for s in variant.stocks
            ],
        )
