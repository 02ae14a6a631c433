import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_ROOT = "ciudades"


def setup_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the application logger.

    Safe to call more than once (app reloads, test clients); the level is
    updated but handlers are never duplicated.
    """
    logger = logging.getLogger(_ROOT)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(getattr(h, "_ciudades", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handler._ciudades = True  # type: ignore[attr-defined]
        logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{_ROOT}.{name}")
