# distribuidora/models/catalog.py
from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, Numeric, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from distribuidora.database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(40), unique=True, nullable=False)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    products = relationship("Product", back_populates="category")


# --- PRODUCTO PADRE ---
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), index=True, nullable=False)
    description = Column(Text, nullable=True)

    # La categoría se puede borrar sin tocar el producto
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)

    default_price = Column(Numeric(18, 4), nullable=False)
    currency = Column(String(10), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    # Relaciones
    category = relationship("Category", back_populates="products")
    # Sin cascade de borrado: un producto con variantes no se puede eliminar (RESTRICT)
    variants = relationship(
        "ProductVariant",
        back_populates="product",
        order_by="ProductVariant.id",
        passive_deletes="all",
    )


# --- VARIANTES (SKU) ---
class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)

    sku = Column(String(80), unique=True, index=True, nullable=False)
    barcode = Column(String(80), nullable=True)
    variant_name = Column(String(255), nullable=True)  # Ej: "Color: Rojo", "Talla: M"
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="variants")
    stocks = relationship(
        "InventoryStock",
        back_populates="variant",
        order_by="InventoryStock.warehouse_id",
        passive_deletes="all",
    )
