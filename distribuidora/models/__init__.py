# distribuidora/models/__init__.py

# 1. Base de datos (Origen de la clase declarativa)
from distribuidora.database import Base

# 2. Usuarios (solo auditoría)
from .users import User

# 3. Catálogo
from .catalog import Category, Product, ProductVariant

# 4. Almacenes y existencias
from .inventory import Warehouse, InventoryStock

# 5. Clientes y pedidos
from .crm import Client
from .orders import Order, OrderItem, OrderStatus, OrderStatusCode
