"""
Manejadores de inicio de los jobs (logging y validacion de configuracion).
"""
import sys

from loguru import logger

from airbridge.core.config import Settings


def configure_logging(cfg: Settings) -> None:
    """
    Configura los sinks de loguru para una corrida de CLI.

    - stdout: progreso y resultados por registro (niveles < ERROR)
    - stderr: errores (incluye el error fatal que termina la corrida)
    - archivo: todo, con rotacion
    """
    logger.remove()
    logger.add(
        sys.stdout,
        level=cfg.LOG_LEVEL,
        filter=lambda record: record["level"].no < logger.level("ERROR").no,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )
    logger.add(
        sys.stderr,
        level="ERROR",
        format="<red>{time:HH:mm:ss}</red> | <level>{level: <8}</level> | {message}",
    )
    if cfg.LOG_FILE:
        logger.add(
            cfg.LOG_FILE,
            rotation="500 MB",
            retention="10 days",
            level=cfg.LOG_LEVEL
        )


def warn_on_optional_config(cfg: Settings) -> None:
    """Advierte sobre configuracion que cambia el comportamiento por defecto."""
    warnings = []

    if cfg.AIRTABLE_MAX_RETRIES > 0:
        warnings.append(
            f"AIRTABLE_MAX_RETRIES={cfg.AIRTABLE_MAX_RETRIES}: se reintentaran errores 429/5xx de Airtable"
        )
    if not cfg.ATTACHMENT_FALLBACK_TO_SOURCE_URL:
        warnings.append(
            "ATTACHMENT_FALLBACK_TO_SOURCE_URL=false: los adjuntos que fallen se omitiran"
        )

    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")
