"""
Logging setup shared by the support backend and the chat client.

Both packages log under their own root (`storefront`, `support_agent`); each
root gets one stdout handler at `LOG_LEVEL` and does not propagate.
"""
import logging
import os
import sys
from typing import Optional

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ROOT_LOGGERS = ("storefront", "support_agent")

_configured = set()


def _configure_root(name: str) -> logging.Logger:
    root = logging.getLogger(name)
    if name in _configured:
        return root

    root.setLevel(LOG_LEVEL)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(LOG_LEVEL)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
    root.propagate = False
    _configured.add(name)
    return root


logger = _configure_root("storefront")


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance.

    Names already under a known root (`support_agent.chat`) are used as given;
    anything else is placed under `storefront` (`api.server` -> `storefront.api.server`).
    """
    if not name:
        return logger
    root = name.split(".", 1)[0]
    if root in ROOT_LOGGERS:
        _configure_root(root)
        return logging.getLogger(name)
    return logging.getLogger(f"storefront.{name}")


def set_level(level: str) -> None:
    """Change the level of every package root and its handlers."""
    for name in ROOT_LOGGERS:
        root = _configure_root(name)
        root.setLevel(level)
        for handler in root.handlers:
            handler.setLevel(level)
