# packsmith/core/logging/formatters.py
from __future__ import annotations

import logging

from packsmith.core.jsonutils import safeJsonDumps
from .context import getLogContext

__all__ = ["JsonFormatter", "DevFormatter", "PlainFormatter"]



def _contextTag() -> str:
    # " [add/sodium]" from the current operation and mod, or "" without context
    ctx = getLogContext() or {}
    parts = [str(ctx[key]) for key in ("operation", "mod") if ctx.get(key)]
    return f" [{'/'.join(parts)}]" if parts else ""



class JsonFormatter(logging.Formatter):
    """One JSON object per line, for the rotating log file."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": int(record.created * 1000),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
            "ctx": getLogContext() or {},
            "pid": record.process,
        }
        if record.exc_info and record.exc_info[1] is not None:
            entry["exc"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
                "stack": self.formatException(record.exc_info),
            }
        return safeJsonDumps(entry)



class DevFormatter(logging.Formatter):
    """Console output while developing: level, logger, message, context tag."""

    def format(self, record: logging.LogRecord) -> str:
        text = f"{record.levelname}: [{record.name}] {record.getMessage()}{_contextTag()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        if record.stack_info:
            text += "\n" + self.formatStack(record.stack_info)
        return text



class PlainFormatter(logging.Formatter):
    """Message only; warnings and errors get a lowercase level prefix."""

    def format(self, record: logging.LogRecord) -> str:
        text = record.getMessage()
        if record.levelno >= logging.WARNING:
            text = f"{record.levelname.lower()}: {text}"
        if record.exc_info and record.levelno >= logging.ERROR:
            text += "\n" + self.formatException(record.exc_info)
        return text
