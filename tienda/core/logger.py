"""
Configuración de logging de la tienda.

Un solo logger raíz ``tienda`` con salida a stdout; el nivel se toma de
``LOG_LEVEL``.
"""
import logging
import sys
from typing import Optional

from .config import settings

LOG_LEVEL = settings.log_level.upper()
logger = logging.getLogger("tienda")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

# Evita logs duplicados en el root logger
logger.propagate = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Devuelve un logger hijo de ``tienda``.

    Args:
        name: sufijo opcional (``checkout`` -> ``tienda.checkout``)
    """
    if name:
        return logging.getLogger(f"tienda.{name}")
    return logger
