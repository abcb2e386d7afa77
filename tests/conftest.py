"""
Fixtures compartidos: base SQLite en memoria con los datos de referencia,
servicios armados desde el contenedor y un TestClient apuntando a la misma
sesión.
"""
import itertools
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from distribuidora.config import Settings
from distribuidora.container import build_services
from distribuidora.database import Base, build_engine, build_session_factory, get_db
from distribuidora.init_db import seed_reference_data
from distribuidora.main import create_app
from distribuidora.models import (
    Category, Client, Order, OrderItem, OrderStatus, ProductVariant, User, Warehouse,
)
from distribuidora.schemas.products import ProductCreate


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://")


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = build_session_factory(engine)()
    seed_reference_data(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def services(settings):
    return build_services(settings)


@pytest.fixture
def api(settings, db):
    """TestClient con get_db apuntando a la sesión de la prueba."""
    app = create_app(settings)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


# -----------------------------
# Referencias sembradas
# -----------------------------
@pytest.fixture
def category(db):
    return db.query(Category).filter(Category.code == "ELECTRONICA").one()


@pytest.fixture
def main_warehouse(db):
    return db.query(Warehouse).filter(Warehouse.name == "Almacén Principal").one()


@pytest.fixture
def second_warehouse(db):
    return db.query(Warehouse).filter(Warehouse.name == "Almacén Secundario").one()


@pytest.fixture
def status_ids(db):
    """código -> id de los estatus sembrados."""
    return {s.code: s.id for s in db.query(OrderStatus).all()}


# -----------------------------
# Fábricas
# -----------------------------
@pytest.fixture
def make_product(db, services, category):
    """Crea un producto con el servicio real y regresa el resultado."""
    def _make(sku="CAM", name="Cámara", price=Decimal("100"), variants=None, **extra):
        data = ProductCreate(
            name=name,
            sku=sku,
            category_id=extra.pop("category_id", category.id),
            price=price,
            variants=variants if variants is not None else [{"initial_stock": 0}],
            **extra,
        )
        return services.products.create_product(db, data)

    return _make


@pytest.fixture
def make_client(db):
    counter = itertools.count(1)

    def _make(name=None, is_active=True, created_at=None, document=None):
        n = next(counter)
        client = Client(
            name=name or f"Cliente {n:03d}",
            document=document,
            is_active=is_active,
        )
        if created_at is not None:
            client.created_at = created_at
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    return _make


@pytest.fixture
def make_user(db):
    def _make(email="vendedor@distribuidora.mx"):
        user = User(email=email, full_name="Vendedor")
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_order(db, status_ids):
    """
    items: lista de (variant_id, qty, unit_price, list_price).
    line_total = qty * unit_price.
    """
    counter = itertools.count(1)

    def _make(client, status_code="COTIZADO", items=(), created_at=None):
        n = next(counter)
        order = Order(
            code=f"ORD-{n:04d}",
            client_id=client.id,
            status_id=status_ids[status_code],
            currency="MXN",
        )
        if created_at is not None:
            order.created_at = created_at
        db.add(order)
        db.flush()

        subtotal = Decimal("0")
        for variant_id, qty, unit_price, list_price in items:
            line_total = Decimal(unit_price) * qty
            subtotal += line_total
            db.add(OrderItem(
                order_id=order.id,
                variant_id=variant_id,
                qty=qty,
                unit_price=Decimal(unit_price),
                list_price=Decimal(list_price) if list_price is not None else None,
                currency="MXN",
                line_total=line_total,
                description="Renglón de prueba",
            ))
        order.subtotal = subtotal
        order.total = subtotal
        db.commit()
        db.refresh(order)
        return order

    return _make


@pytest.fixture
def find_variant(db):
    def _find(sku):
        return db.query(ProductVariant).filter(ProductVariant.sku == sku).one()

    return _find
