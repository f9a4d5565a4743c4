# packsmith/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers

from packsmith.app.settings import config, configBool
from .formatters import DevFormatter, JsonFormatter, PlainFormatter

__all__ = ["NO_PROPAGATE", "configureLogging"]



# Disable propagation from chatty libraries
NO_PROPAGATE = [
    "asyncio",
    "httpcore.connection", "httpcore.http11", "httpcore.http2",
    "hpack",
]



def configureLogging(*, verbose: bool = False) -> None:
    """
    Initiate the global logging configuration.

    Normal (default):
      - Console INFO, message only
    Dev (logging.devMode or --verbose):
      - Console pretty logs (DEBUG)
    Both:
      - Optional JSON file log with rotation (logging.file)
    """
    devMode = configBool("logging.devMode", False) or verbose
    rootLevel = logging.DEBUG if devMode else logging.INFO
    levelName = config("logging.level", None)
    if isinstance(levelName, str):
        rootLevel = getattr(logging, levelName.upper(), rootLevel)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(rootLevel)

    for name in NO_PROPAGATE:
        logging.getLogger(name).propagate = False

    consoleHandler = logging.StreamHandler()
    consoleHandler.setLevel(rootLevel)
    consoleHandler.setFormatter(DevFormatter() if devMode else PlainFormatter())
    root.addHandler(consoleHandler)

    logFile = config("logging.file", None)
    if logFile:
        fileHandler = logging.handlers.RotatingFileHandler(
            str(logFile),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        fileHandler.setLevel(rootLevel)
        fileHandler.setFormatter(JsonFormatter())
        root.addHandler(fileHandler)

    # Per-logger tweaks (reduce noise)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
