import logging

from glrules.config import get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging() -> logging.Logger:
    level = getattr(logging, get_settings().log_level.upper(), logging.INFO)

    logger = logging.getLogger("glrules")
    logger.setLevel(level)

    # Avoid duplicate console handlers
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        ch.setLevel(level)
        logger.addHandler(ch)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    base = logging.getLogger("glrules")
    return base.getChild(name) if name else base
