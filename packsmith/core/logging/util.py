# packsmith/core/logging/util.py
from __future__ import annotations

import logging



def getLogger(name: str) -> logging.Logger:
    # Keep everything under the "packsmith" root so one level setting covers it
    return logging.getLogger(name if name.startswith("packsmith") else f"packsmith.{name}")



def getProviderLogger(providerId: str) -> logging.Logger:
    return logging.getLogger(f"packsmith.providers.{str(providerId).strip()}")
