# distribuidora/services/products.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from distribuidora.config import Settings
from distribuidora.database import transaction
from distribuidora.exceptions import (
    DuplicateSkuError, NotFoundError, OwnershipError, ValidationError,
)
from distribuidora.models import Category, InventoryStock, Product, ProductVariant
from distribuidora.schemas.common import Paginated
from distribuidora.schemas.products import (
    CreateProductResult, ProductCreate, ProductDetail, ProductFilters,
    ProductListItem, ProductStats, ProductUpdate, ProductVariantDetail,
    UpdateProductResult, VariantInput, WarehouseStockRead,
)
from distribuidora.services.inventory import StockLedger
from distribuidora.utils.pagination import build_pagination, clamp_page

logger = logging.getLogger(__name__)


# -----------------------------
# Representación canónica de la entrada
# -----------------------------
@dataclass
class VariantDraft:
    """Variante ya normalizada: un solo nombre por campo, sin alias."""
    sku: str
    variant_name: str
    barcode: Optional[str]
    quantity: int
    warehouse_id: Optional[int]
    is_active: bool = True


@dataclass
class ProductDraft:
    name: str
    description: Optional[str]
    sku: str
    category_id: int
    price: Decimal
    currency: str
    variants: List[VariantDraft] = field(default_factory=list)


@dataclass
class VariantChange:
    """Cambios sobre una variante existente; None = no se toca."""
    variant: ProductVariant
    sku: Optional[str] = None
    barcode: Optional[str] = None
    variant_name: Optional[str] = None
    is_active: Optional[bool] = None
    quantity: Optional[int] = None
    warehouse_id: Optional[int] = None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def pick_price(price: Optional[Decimal], default_price: Optional[Decimal]) -> Optional[Decimal]:
    """price gana; default_price solo se usa si price no vino."""
    return price if price is not None else default_price


def compose_variant_name(spec: VariantInput) -> Optional[str]:
    name = _clean(spec.variant_name)
    if name:
        return name
    variant_type, variant_value = _clean(spec.variant_type), _clean(spec.variant_value)
    if variant_type and variant_value:
        return f"{variant_type}: {variant_value}"
    return None


def normalize_variant(spec: VariantInput, position: int, base_sku: str, prefer: str = "initial_stock") -> VariantDraft:
    """
    Normaliza una variante. position es 1-based y sirve para el SKU generado
    ("{base_sku}-{position}") y para el nombre por defecto ("Variante N").

    prefer indica qué alias de stock gana: al crear manda initial_stock,
    al editar manda stock.
    """
    if prefer == "initial_stock":
        quantity = spec.initial_stock if spec.initial_stock is not None else spec.stock
    else:
        quantity = spec.stock if spec.stock is not None else spec.initial_stock
    if quantity is None:
        quantity = 0
    if quantity < 0:
        raise ValidationError(f"La variante {position} requiere un stock inicial válido (>= 0)")

    return VariantDraft(
        sku=_clean(spec.sku) or f"{base_sku}-{position}",
        variant_name=compose_variant_name(spec) or f"Variante {position}",
        barcode=_clean(spec.barcode),
        quantity=quantity,
        warehouse_id=spec.warehouse_id,
        is_active=spec.is_active if spec.is_active is not None else True,
    )


class ProductService:
    """Alta y edición de productos con sus variantes y existencias."""

    def __init__(self, settings: Settings, ledger: StockLedger):
        self.settings = settings
        self.ledger = ledger

    # -----------------------------
    # Normalización
    # -----------------------------
    def normalize_create(self, data: ProductCreate) -> ProductDraft:
        name = _clean(data.name)
        if not name:
            raise ValidationError("El nombre del producto es requerido")

        sku = _clean(data.sku)
        if not sku:
            raise ValidationError("El SKU del producto es requerido")

        if data.category_id is None:
            raise ValidationError("La categoría es requerida")

        price = pick_price(data.price, data.default_price)
        if price is None or price < 0:
            raise ValidationError("El precio debe ser un número válido mayor o igual a 0")

        if not data.variants:
            raise ValidationError("Debe agregar al menos una variación del producto")

        return ProductDraft(
            name=name,
            description=_clean(data.description),
            sku=sku,
            category_id=data.category_id,
            price=price,
            currency=_clean(data.currency) or self.settings.default_currency,
            variants=[
                normalize_variant(spec, index + 1, sku, prefer="initial_stock")
                for index, spec in enumerate(data.variants)
            ],
        )

    # -----------------------------
    # Validaciones contra la BD
    # -----------------------------
    def _check_category(self, db: Session, category_id: int) -> Category:
        category = db.get(Category, category_id)
        if category is None:
            raise NotFoundError("La categoría especificada no existe")
        return category

    @staticmethod
    def _taken_skus(db: Session, skus: Iterable[str], exclude_ids: Iterable[int] = ()) -> List[str]:
        skus = list(skus)
        if not skus:
            return []
        query = db.query(ProductVariant.sku).filter(ProductVariant.sku.in_(skus))
        exclude_ids = list(exclude_ids)
        if exclude_ids:
            query = query.filter(ProductVariant.id.notin_(exclude_ids))
        return [row.sku for row in query.all()]

    def _ensure_skus_available(self, db: Session, skus: List[str], exclude_ids: Iterable[int] = ()) -> None:
        """Primero repetidos dentro del mismo payload, después contra la BD (en orden de entrada)."""
        seen = set()
        for sku in skus:
            if sku in seen:
                raise DuplicateSkuError(sku)
            seen.add(sku)

        taken = set(self._taken_skus(db, skus, exclude_ids))
        for sku in skus:
            if sku in taken:
                raise DuplicateSkuError(sku)

    def _resolve_warehouses(self, db: Session, drafts: Iterable) -> None:
        default_id = None
        for draft in drafts:
            if draft.warehouse_id is None:
                if default_id is None:
                    default_id = self.ledger.default_warehouse(db).id
                draft.warehouse_id = default_id
            else:
                self.ledger.resolve_warehouse(db, draft.warehouse_id)

    def _raise_if_sku_race(self, db: Session, skus: List[str], exclude_ids: Iterable[int] = ()) -> None:
        """Tras un IntegrityError: si algún SKU ya está tomado, fue una carrera."""
        taken = self._taken_skus(db, skus, exclude_ids)
        if taken:
            raise DuplicateSkuError(taken[0])

    # -----------------------------
    # Crear
    # -----------------------------
    def create_product(self, db: Session, data: ProductCreate) -> CreateProductResult:
        draft = self.normalize_create(data)
        category = self._check_category(db, draft.category_id)
        self._resolve_warehouses(db, draft.variants)

        # El SKU base sólo se compara contra la BD; las variantes además entre sí
        variant_skus = [v.sku for v in draft.variants]
        if draft.sku not in variant_skus:
            self._ensure_skus_available(db, [draft.sku])
        self._ensure_skus_available(db, variant_skus)
        skus = [draft.sku] + variant_skus

        try:
            with transaction(db):
                product = Product(
                    name=draft.name,
                    description=draft.description,
                    category_id=draft.category_id,
                    default_price=draft.price,
                    currency=draft.currency,
                    is_active=True,
                )
                db.add(product)
                db.flush()

                for variant_draft in draft.variants:
                    variant = ProductVariant(
                        product_id=product.id,
                        sku=variant_draft.sku,
                        barcode=variant_draft.barcode,
                        variant_name=variant_draft.variant_name,
                        is_active=variant_draft.is_active,
                    )
                    db.add(variant)
                    db.flush()

                    self.ledger.upsert_stock(
                        db,
                        variant.id,
                        variant_draft.warehouse_id,
                        qty_on_hand=variant_draft.quantity,
                    )
        except IntegrityError:
            self._raise_if_sku_race(db, skus)
            raise

        logger.info(
            "Producto creado: id=%s sku=%s variantes=%s",
            product.id, draft.sku, len(draft.variants),
        )

        return CreateProductResult(
            id=product.id,
            name=draft.name,
            sku=draft.sku,
            category=category.name,
            price=draft.price,
            currency=draft.currency,
            variants_created=len(draft.variants),
            message="Producto creado correctamente",
        )

    # -----------------------------
    # Editar
    # -----------------------------
    def _plan_variant_changes(self, db: Session, product: Product, specs: List[VariantInput]):
        """Separa las variantes del payload en cambios a existentes y altas nuevas."""
        changes: List[VariantChange] = []
        new_specs = []

        for index, spec in enumerate(specs):
            position = index + 1
            if spec.id is None:
                new_specs.append(spec)
                continue

            variant = db.get(ProductVariant, spec.id)
            if variant is None:
                raise NotFoundError(f"Variante {spec.id} no encontrada")
            if variant.product_id != product.id:
                raise OwnershipError(spec.id, product.id)

            quantity = spec.stock if spec.stock is not None else spec.initial_stock
            if quantity is not None and quantity < 0:
                raise ValidationError(f"La variante {position} tiene un stock inválido (debe ser >= 0)")

            changes.append(VariantChange(
                variant=variant,
                sku=_clean(spec.sku),
                barcode=_clean(spec.barcode),
                variant_name=compose_variant_name(spec),
                is_active=spec.is_active,
                quantity=quantity,
                warehouse_id=spec.warehouse_id,
            ))

        existing = list(product.variants)
        base_sku = existing[0].sku if existing else f"PROD-{product.id}"
        offset = len(existing)
        drafts = [
            normalize_variant(spec, offset + i + 1, base_sku, prefer="stock")
            for i, spec in enumerate(new_specs)
        ]
        return changes, drafts

    def update_product(self, db: Session, product_id: int, data: ProductUpdate) -> UpdateProductResult:
        product = (
            db.query(Product)
            .options(selectinload(Product.variants), joinedload(Product.category))
            .filter(Product.id == product_id)
            .first()
        )
        if product is None:
            raise NotFoundError("Producto no encontrado")

        # 1. Validar campos del producto
        name = None
        if data.name is not None:
            name = _clean(data.name)
            if not name:
                raise ValidationError("El nombre del producto no puede estar vacío")

        if data.category_id is not None:
            self._check_category(db, data.category_id)

        price = pick_price(data.price, data.default_price)
        if price is not None and price < 0:
            raise ValidationError("El precio debe ser un número válido mayor o igual a 0")

        # 2. Validar variantes
        changes, drafts = self._plan_variant_changes(db, product, data.variants or [])

        self._resolve_warehouses(
            db, [c for c in changes if c.quantity is not None] + drafts
        )

        changed_skus: Dict[int, str] = {
            c.variant.id: c.sku for c in changes if c.sku and c.sku != c.variant.sku
        }
        for variant_id, sku in changed_skus.items():
            if self._taken_skus(db, [sku], exclude_ids=[variant_id]):
                raise DuplicateSkuError(sku)

        new_skus = [d.sku for d in drafts]
        self._ensure_skus_available(db, new_skus + list(changed_skus.values()), exclude_ids=changed_skus.keys())

        # 3. Escribir todo en una sola transacción
        try:
            with transaction(db):
                if name is not None:
                    product.name = name
                if data.description is not None:
                    product.description = _clean(data.description)
                if data.category_id is not None:
                    product.category_id = data.category_id
                if price is not None:
                    product.default_price = price
                if data.currency is not None:
                    product.currency = _clean(data.currency) or self.settings.default_currency
                if data.is_active is not None:
                    product.is_active = data.is_active
                product.updated_at = func.now()

                for change in changes:
                    variant = change.variant
                    if change.sku is not None:
                        variant.sku = change.sku
                    if change.barcode is not None:
                        variant.barcode = change.barcode
                    if change.variant_name is not None:
                        variant.variant_name = change.variant_name
                    if change.is_active is not None:
                        variant.is_active = change.is_active
                    if change.quantity is not None:
                        self.ledger.upsert_stock(
                            db, variant.id, change.warehouse_id, qty_on_hand=change.quantity,
                        )

                for draft in drafts:
                    variant = ProductVariant(
                        product_id=product.id,
                        sku=draft.sku,
                        barcode=draft.barcode,
                        variant_name=draft.variant_name,
                        is_active=draft.is_active,
                    )
                    db.add(variant)
                    db.flush()
                    self.ledger.upsert_stock(db, variant.id, draft.warehouse_id, qty_on_hand=draft.quantity)
        except IntegrityError:
            self._raise_if_sku_race(db, new_skus + list(changed_skus.values()), exclude_ids=changed_skus.keys())
            raise

        db.refresh(product)
        logger.info(
            "Producto actualizado: id=%s variantes_actualizadas=%s variantes_creadas=%s",
            product.id, len(changes), len(drafts),
        )

        return UpdateProductResult(
            id=product.id,
            name=product.name,
            sku=product.variants[0].sku if product.variants else "",
            category=product.category.name if product.category else None,
            price=product.default_price,
            currency=product.currency,
            is_active=product.is_active,
            variants_updated=len(changes),
            variants_created=len(drafts),
            message="Producto actualizado correctamente",
        )

    # -----------------------------
    # Consultas
    # -----------------------------
    def list_categories(self, db: Session) -> List[Category]:
        return (
            db.query(Category)
            .filter(Category.is_active.is_(True))
            .order_by(Category.sort_order.asc(), Category.name.asc())
            .all()
        )

    def list_products(self, db: Session, filters: ProductFilters) -> Paginated[ProductListItem]:
        page, limit = clamp_page(filters.page, filters.limit, self.settings)
        query = db.query(Product)

        if filters.search and filters.search.strip():
            s = f"%{filters.search.strip()}%"
            query = query.filter(or_(Product.name.ilike(s), Product.description.ilike(s)))
        if filters.category_id is not None:
            query = query.filter(Product.category_id == filters.category_id)
        if filters.sku and filters.sku.strip():
            query = query.filter(Product.variants.any(ProductVariant.sku.ilike(f"%{filters.sku.strip()}%")))
        if filters.is_active is not None:
            query = query.filter(Product.is_active.is_(filters.is_active))
        if filters.min_price is not None:
            query = query.filter(Product.default_price >= filters.min_price)
        if filters.max_price is not None:
            query = query.filter(Product.default_price <= filters.max_price)
        if filters.has_stock is not None:
            with_stock = (
                select(ProductVariant.product_id)
                .join(InventoryStock, InventoryStock.variant_id == ProductVariant.id)
                .group_by(ProductVariant.product_id)
                .having(func.sum(InventoryStock.qty_on_hand) > 0)
            )
            if filters.has_stock:
                query = query.filter(Product.id.in_(with_stock))
            else:
                query = query.filter(Product.id.notin_(with_stock))

        total = query.count()
        products = (
            query.options(
                joinedload(Product.category),
                selectinload(Product.variants).selectinload(ProductVariant.stocks),
            )
            .order_by(Product.name.asc(), Product.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        items = [
            ProductListItem(
                id=p.id,
                name=p.name,
                sku=p.variants[0].sku if p.variants else "",
                category=p.category.name if p.category else None,
                category_id=p.category_id,
                default_price=p.default_price,
                currency=p.currency,
                total_stock=sum(s.qty_on_hand for v in p.variants for s in v.stocks),
                status="Activo" if p.is_active else "Inactivo",
            )
            for p in products
        ]
        return Paginated[ProductListItem](data=items, pagination=build_pagination(total, page, limit))

    def product_detail(self, db: Session, product_id: int) -> ProductDetail:
        product = (
            db.query(Product)
            .options(
                joinedload(Product.category),
                selectinload(Product.variants)
                .selectinload(ProductVariant.stocks)
                .joinedload(InventoryStock.warehouse),
            )
            .filter(Product.id == product_id)
            .first()
        )
        if product is None:
            raise NotFoundError("Producto no encontrado")

        variants = []
        for v in product.variants:
            stock = sum(s.qty_on_hand for s in v.stocks)
            reserved = sum(s.qty_reserved for s in v.stocks)
            variants.append(ProductVariantDetail(
                id=v.id,
                sku=v.sku,
                barcode=v.barcode,
                variant_name=v.variant_name,
                stock=stock,
                reserved=reserved,
                available=stock - reserved,
                status="Disponible" if stock - reserved > 0 else "Sin Stock",
                warehouses=[
                    WarehouseStockRead(
                        warehouse_id=s.warehouse_id,
                        warehouse_name=s.warehouse.name,
                        qty_on_hand=s.qty_on_hand,
                        qty_reserved=s.qty_reserved,
                        qty_available=s.qty_available,
                    )
                    for s in v.stocks
                ],
            ))

        return ProductDetail(
            id=product.id,
            name=product.name,
            description=product.description,
            sku=variants[0].sku if variants else "",
            category=product.category.name if product.category else "Sin categoría",
            category_id=product.category_id,
            price=product.default_price,
            currency=product.currency,
            total_stock=sum(v.stock for v in variants),
            status="Activo" if product.is_active else "Inactivo",
            created_at=product.created_at,
            updated_at=product.updated_at,
            variants=variants,
        )

    def product_stats(self, db: Session) -> ProductStats:
        total = db.query(func.count(Product.id)).scalar() or 0
        active = (
            db.query(func.count(Product.id))
            .filter(Product.is_active.is_(True))
            .scalar()
        ) or 0
        on_hand, reserved = db.query(
            func.coalesce(func.sum(InventoryStock.qty_on_hand), 0),
            func.coalesce(func.sum(InventoryStock.qty_reserved), 0),
        ).one()

        return ProductStats(
            total_products=total,
            active_products=active,
            inactive_products=total - active,
            total_stock_on_hand=int(on_hand),
            total_stock_reserved=int(reserved),
        )
