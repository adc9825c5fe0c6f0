import logging
import os


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "derma_relay"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    return root


def set_level(level: str) -> None:
    _configure_root().setLevel(level.upper())


def get_logger(name: str) -> logging.Logger:
    _configure_root()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
