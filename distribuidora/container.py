# distribuidora/container.py
# Contenedor de servicios: se arma una vez al crear la app y se guarda en
# app.state. Los routers lo piden con Depends(get_services); las pruebas
# pueden construir el suyo con otra configuración.
from dataclasses import dataclass

from fastapi import Request

from distribuidora.config import Settings
from distribuidora.services import ClientService, OrderWorkflow, ProductService, StockLedger


@dataclass(frozen=True)
class Services:
    settings: Settings
    ledger: StockLedger
    products: ProductService
    orders: OrderWorkflow
    clients: ClientService


def build_services(settings: Settings) -> Services:
    ledger = StockLedger(settings)
    return Services(
        settings=settings,
        ledger=ledger,
        products=ProductService(settings, ledger),
        orders=OrderWorkflow(settings),
        clients=ClientService(settings),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
