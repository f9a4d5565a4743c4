# packsmith/app/settings.py
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Any

import json5

from packsmith.core.config_stack import ConfigLayer, ConfigStack

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULTS", "userConfigPath", "initSettings", "getSettings",
    "resetSettings", "config", "configBool", "setOverride",
]



CONFIG_DIR_NAME = "packsmith"
CONFIG_FILENAME = "config.json5"
CONFIG_ENV_VAR = "PACKSMITH_CONFIG"

DEFAULTS: dict[str, Any] = {
    "http": {
        "timeoutMs": 30_000,
        "retries": 2,
        "backoffBaseMs": 250,
        "backoffMaxMs": 1_000,
        "userAgent": "packsmith/0.3.0 (modpack manager)",
    },
    "catalog": {
        "baseUrl": "https://api.modrinth.com/v2",
    },
    "sync": {
        "maxParallelDownloads": 1,
    },
    "logging": {
        "devMode": False,
        "level": None,
        "file": None,
    },
}

_SETTINGS: ConfigStack | None = None



def userConfigPath() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / CONFIG_DIR_NAME / CONFIG_FILENAME



def _readUserLayer(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = json5.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as err:
        # A broken user config should not make the tool unusable
        logger.warning("Ignoring unreadable config file %s: %s", path, err)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: top level must be an object", path)
        return {}
    return data



def initSettings(*, userConfig: Path | None = None, overrides: dict[str, Any] | None = None) -> ConfigStack:
    """
    Build the process-wide config stack (defaults <- user file <- runtime overrides).
    Calling it again rebuilds the stack from scratch.
    """
    global _SETTINGS
    stack = ConfigStack()
    stack.addLayer(ConfigLayer(name="defaults", scope="defaults", data=DEFAULTS))
    path = userConfig if userConfig is not None else userConfigPath()
    stack.addLayer(ConfigLayer(name=f"user:{path}", scope="user", data=_readUserLayer(path)))
    for key, value in (overrides or {}).items():
        stack.setOverride(key, value)
    _SETTINGS = stack
    return stack



def getSettings() -> ConfigStack:
    if _SETTINGS is None:
        return initSettings()
    return _SETTINGS



def resetSettings() -> None:
    global _SETTINGS
    _SETTINGS = None



def setOverride(path: str, value: Any) -> None:
    getSettings().setOverride(path, value)



def config(path: str, default: Any = None) -> Any:
    """
    Read a dotted path from the merged configuration.

    Example:
      config("http.timeoutMs")          # 30000 unless overridden
      config("non.existing.path", 300)  # 300
    """
    return getSettings().get(path, default)



def configBool(path: str, default: bool = False) -> bool:
    val = config(path, None)
    if isinstance(val, bool):
        return val
    if val is None:
        return default
    return bool(val)
