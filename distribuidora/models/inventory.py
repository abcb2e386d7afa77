from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, DateTime,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from distribuidora.database import Base


class Warehouse(Base):
    """Almacén físico. El de menor id activo es el almacén por defecto."""
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), unique=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())


class InventoryStock(Base):
    """
    Existencias de una variante en un almacén.
    Disponible = qty_on_hand - qty_reserved (no se guarda).
    """
    __tablename__ = "inventory_stock"
    __table_args__ = (
        UniqueConstraint("variant_id", "warehouse_id", name="uq_inventory_stock_variant_warehouse"),
        CheckConstraint("qty_on_hand >= 0", name="ck_inventory_stock_on_hand_positive"),
        CheckConstraint("qty_reserved >= 0", name="ck_inventory_stock_reserved_positive"),
        CheckConstraint("qty_reserved <= qty_on_hand", name="ck_inventory_stock_reserved_le_on_hand"),
    )

    id = Column(Integer, primary_key=True, index=True)
    variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="RESTRICT"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)

    qty_on_hand = Column(Integer, default=0, nullable=False)
    qty_reserved = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    variant = relationship("ProductVariant", back_populates="stocks")
    warehouse = relationship("Warehouse")

    @property
    def qty_available(self) -> int:
        return (self.qty_on_hand or 0) - (self.qty_reserved or 0)
