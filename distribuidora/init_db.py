# distribuidora/init_db.py
# Crea las tablas y los datos de referencia fijos (estatus, almacenes,
# categorías). Se puede correr varias veces: solo agrega lo que falta.
#
#   python -m distribuidora.init_db
from sqlalchemy.orm import Session

from distribuidora.database import Base, SessionLocal, engine
from distribuidora.models import Category, OrderStatus, Warehouse

ORDER_STATUSES = [
    ("COTIZADO", "Cotizado", 1),
    ("TRANSMITIDO", "Transmitido", 2),
    ("EN_CURSO", "En Curso", 3),
    ("ENVIADO", "Enviado", 4),
    ("CANCELADO", "Cancelado", 5),
]

# El primero es el almacén por defecto (menor id)
WAREHOUSES = ["Almacén Principal", "Almacén Secundario"]

CATEGORIES = [
    ("ELECTRONICA", "Electrónica", "Productos electrónicos y tecnología", 1),
    ("ROPA", "Ropa", "Ropa y textiles", 2),
    ("CALZADO", "Calzado", "Zapatos y calzado en general", 3),
    ("ACCESORIOS", "Accesorios", "Accesorios diversos", 4),
]


def seed_reference_data(db: Session) -> dict:
    """Inserta lo que falte y regresa cuántos registros nuevos hubo por tabla."""
    created = {"order_statuses": 0, "warehouses": 0, "categories": 0}

    for code, label, sort_order in ORDER_STATUSES:
        if not db.query(OrderStatus).filter(OrderStatus.code == code).first():
            db.add(OrderStatus(code=code, label=label, sort_order=sort_order, is_active=True))
            created["order_statuses"] += 1

    for name in WAREHOUSES:
        if not db.query(Warehouse).filter(Warehouse.name == name).first():
            db.add(Warehouse(name=name, is_active=True))
            db.flush()  # Respeta el orden de ids
            created["warehouses"] += 1

    for code, name, description, sort_order in CATEGORIES:
        if not db.query(Category).filter(Category.code == code).first():
            db.add(Category(code=code, name=name, description=description, sort_order=sort_order, is_active=True))
            created["categories"] += 1

    db.commit()
    return created


def init_db():
    print("--- Creando Tablas ---")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        created = seed_reference_data(db)
    finally:
        db.close()
    print(f"--- SEED TERMINADO --- {created}")


if __name__ == "__main__":
    init_db()
