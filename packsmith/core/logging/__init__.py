# packsmith/core/logging/__init__.py
from __future__ import annotations

from .context import setLogContext, clearLogContext, getLogContext, restoreLogContext
from .setup import configureLogging
from .util import getLogger, getProviderLogger

__all__ = [
    "configureLogging",
    "getLogger",
    "getProviderLogger",
    "setLogContext",
    "clearLogContext",
    "getLogContext",
    "restoreLogContext",
]
