# utils/loggers.py
import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name="inventory_core", level=logging.INFO):
    """
    Configure the package logger once (stream handler, shared format) and
    return it. Module loggers are children of it via logging.getLogger(__name__).
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(level)
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(ch)
    return logger
