import logging

_BASE = "reservation"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the 'reservation' logger namespace.

    A stream handler is attached once; repeated calls only adjust the level.
    """
    logger = logging.getLogger(_BASE)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    base = logging.getLogger(_BASE)
    return base.getChild(name) if name else base
