from __future__ import annotations

import logging
from typing import Optional

from .config import LogConfig


PACKAGE = "tordeck"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _build_handler(config: LogConfig) -> logging.Handler:
    if config.to_stdout:
        handler: logging.Handler = logging.StreamHandler()
    else:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(config.file, mode="a", encoding="utf-8", delay=True)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    return handler


def configure_logging(config: Optional[LogConfig] = None) -> logging.Logger:
    """Point the ``tordeck`` logger tree at one handler.

    The terminal belongs to the TUI, so records go to ``config.file`` unless
    ``to_stdout`` is set. Calling again swaps the handler, which is how the
    CLI applies ``--log-level``/``--log-file`` after modules have imported
    their loggers.
    """
    config = config or LogConfig()
    logger = logging.getLogger(PACKAGE)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(config.level.upper())
    logger.addHandler(_build_handler(config))
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger(PACKAGE).handlers:
        configure_logging()
    return logging.getLogger(name)
