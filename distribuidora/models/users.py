from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func

from distribuidora.database import Base


class User(Base):
    """Solo se usa para la auditoría de pedidos (creado / actualizado por)."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
