"""Errores de negocio.

Los servicios los lanzan cuando se viola una regla; la capa HTTP (main.py)
los traduce a respuestas 4xx. Cualquier otra excepción es una falla de
infraestructura y termina en 500.
"""


class DomainError(Exception):
    """Base de todos los errores de negocio."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Entrada mal formada o incompleta."""


class NotFoundError(DomainError):
    """La entidad referenciada no existe."""

    status_code = 404


class DuplicateSkuError(DomainError):
    def __init__(self, sku: str):
        super().__init__(f"El SKU '{sku}' ya está en uso")
        self.sku = sku


class OwnershipError(DomainError):
    def __init__(self, variant_id: int, product_id: int):
        super().__init__(f"La variante {variant_id} no pertenece al producto {product_id}")
        self.variant_id = variant_id
        self.product_id = product_id


class NoWarehouseError(DomainError):
    def __init__(self):
        super().__init__("No hay almacenes activos disponibles")


class InvalidTransitionError(DomainError):
    def __init__(self, current: str, requested: str):
        super().__init__(f"No se puede cambiar la orden de {current} a {requested}")
        self.current = current
        self.requested = requested


class ConcurrentModificationError(DomainError):
    """Otra transacción modificó la fila entre la lectura y la escritura. Se puede reintentar."""

    status_code = 409
