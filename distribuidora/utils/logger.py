import logging
from pathlib import Path

from distribuidora.config import Settings

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def setup_logging(settings: Settings) -> logging.Logger:
    """
    Configura el logger raíz del paquete una sola vez por proceso.

    Siempre escribe a consola; si LOG_DIR está definido agrega
    combined.log (todo) y error.log (solo errores).
    """
    global _configured
    logger = logging.getLogger("distribuidora")
    if _configured:
        return logger

    logger.setLevel(settings.log_level.upper())
    logger.handlers.clear()
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if settings.log_dir:
        logs_dir = Path(settings.log_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)

        combined = logging.FileHandler(logs_dir / "combined.log", encoding="utf-8")
        combined.setFormatter(formatter)
        logger.addHandler(combined)

        errors = logging.FileHandler(logs_dir / "error.log", encoding="utf-8")
        errors.setLevel(logging.ERROR)
        errors.setFormatter(formatter)
        logger.addHandler(errors)

    _configured = True
    return logger
