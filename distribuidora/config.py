# distribuidora/config.py
import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """
    Configuración del servicio. Se lee una sola vez al arrancar (ver container.py)
    y se pasa a los servicios; nada la consulta de forma global.
    """
    # Cambia la URL si usas PostgreSQL o MySQL
    database_url: str = "sqlite:///./distribuidora.db"
    default_currency: str = "MXN"

    # Menos de este número de unidades = "Stock Bajo"
    low_stock_threshold: int = 20

    default_page_limit: int = 10
    max_page_limit: int = 100

    # Si es True, un usuario inexistente en un cambio de estatus es un error;
    # si es False solo se limpia la auditoría "actualizado por".
    strict_acting_user: bool = False

    log_level: str = "INFO"
    log_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.environ.get("DATABASE_URL", cls.database_url),
            default_currency=os.environ.get("DEFAULT_CURRENCY", cls.default_currency),
            low_stock_threshold=int(os.environ.get("LOW_STOCK_THRESHOLD", cls.low_stock_threshold)),
            default_page_limit=int(os.environ.get("DEFAULT_PAGE_LIMIT", cls.default_page_limit)),
            max_page_limit=int(os.environ.get("MAX_PAGE_LIMIT", cls.max_page_limit)),
            strict_acting_user=_env_bool("STRICT_ACTING_USER", cls.strict_acting_user),
            log_level=os.environ.get("LOG_LEVEL", cls.log_level),
            log_dir=os.environ.get("LOG_DIR") or None,
        )
