import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from distribuidora.config import Settings
from distribuidora.container import build_services
from distribuidora.database import Base, engine
from distribuidora.exceptions import DomainError
from distribuidora.routers import clients, inventory, orders, products
from distribuidora.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # 1. CREACIÓN AUTOMÁTICA DE TABLAS
        Base.metadata.create_all(bind=engine)
        logger.info("Servidor listo")
        yield

    app = FastAPI(
        title="Distribuidora API",
        description="Pedidos, catálogo e inventario por almacén para distribución B2B",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = build_services(settings)

    # 2. CONFIGURACIÓN DE CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 3. REGISTRO DE ROUTERS (BACKEND API)
    app.include_router(products.router, prefix="/api/products", tags=["📦 Catálogo de Productos"])
    app.include_router(inventory.router, prefix="/api/inventory", tags=["🔄 Inventario"])
    app.include_router(orders.router, prefix="/api/orders", tags=["📄 Pedidos"])
    app.include_router(clients.router, prefix="/api/clients", tags=["👥 Clientes"])

    # 4. MANEJO DE ERRORES
    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        logger.info("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message, "error": type(exc).__name__},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Datos de entrada inválidos",
                "error": [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()],
            },
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Error no controlado en %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Error interno del servidor"},
        )

    @app.get("/")
    def health_check():
        return {"success": True, "message": "API funcionando correctamente"}

    return app


app = create_app()
