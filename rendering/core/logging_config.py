import logging

from rendering.core.config import LOG_LEVEL, LOG_FORMAT

def get_logger(name: str = "rendering", level: str | None = None) -> logging.Logger:
    """
    Returns a logger with a single console handler attached.
    Calling it again for the same name reuses the existing handler.
    """
    logger: logging.Logger = logging.getLogger(name)
    if not logger.handlers:
        handler: logging.StreamHandler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.WARNING))
    return logger

__all__ = ["get_logger"]
