# distribuidora/routers/__init__.py

# Registro explícito: main.py importa cada router por nombre
from . import products
from . import inventory
from . import orders
from . import clients
