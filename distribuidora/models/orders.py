import enum

from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, DateTime, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from distribuidora.database import Base


# --- Enums ---
class OrderStatusCode(str, enum.Enum):
    COTIZADO = "COTIZADO"        # Cotización, estado inicial
    TRANSMITIDO = "TRANSMITIDO"  # Cotización aprobada / enviada
    EN_CURSO = "EN_CURSO"        # Surtiendo
    ENVIADO = "ENVIADO"          # Entregado a paquetería (final)
    CANCELADO = "CANCELADO"


class OrderStatus(Base):
    """Catálogo fijo de estatus; el flujo entre ellos vive en services/orders.py."""
    __tablename__ = "order_statuses"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(40), unique=True, nullable=False)
    label = Column(String(80), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    orders = relationship("Order", back_populates="status")


# --- Encabezado del pedido ---
class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(40), unique=True, nullable=False)

    client_id = Column(Integer, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True)
    # Solo se modifica a través de OrderWorkflow
    status_id = Column(Integer, ForeignKey("order_statuses.id", ondelete="RESTRICT"), nullable=False, index=True)

    currency = Column(String(10), nullable=True)
    subtotal = Column(Numeric(18, 4), default=0, nullable=False)
    total = Column(Numeric(18, 4), default=0, nullable=False)
    notes = Column(Text, nullable=True)

    created_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    updated_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    # Relaciones
    client = relationship("Client", back_populates="orders")
    status = relationship("OrderStatus", back_populates="orders")
    created_by = relationship("User", foreign_keys=[created_by_user_id])
    updated_by = relationship("User", foreign_keys=[updated_by_user_id])

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItem.id",
    )


# --- Detalle del pedido ---
class OrderItem(Base):
    """
    Renglón histórico: precio y descripción se copian al crear el pedido y no
    se vuelven a tocar. De aquí sale el historial de precios por cliente.
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="RESTRICT"), nullable=False, index=True)

    qty = Column(Integer, default=1, nullable=False)
    unit_price = Column(Numeric(18, 4), nullable=False)
    list_price = Column(Numeric(18, 4), nullable=True)  # Precio de lista al momento de la venta
    currency = Column(String(10), nullable=True)
    line_total = Column(Numeric(18, 4), default=0, nullable=False)
    description = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    order = relationship("Order", back_populates="items")
    variant = relationship("ProductVariant")
