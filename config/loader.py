"""Settings source for the bridge: process environment over a local .env file over defaults"""

import logging
import os
from pathlib import Path
from typing import Optional, TypeVar

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

T = TypeVar("T", int, float, str)


def _expand_home(value: str) -> str:
    return str(Path(value).expanduser()) if value.startswith("~/") else value


class ConfigLoader:
    """Reads settings whose type is given by their default

    The .env file is loaded once; values already present in the process
    environment are never overridden by it.
    """

    def __init__(self, env_path: Optional[str] = None):
        self.env_path = Path(env_path) if env_path else Path(".env")
        if self.env_path.exists():
            load_dotenv(dotenv_path=self.env_path)
            logger.debug(f"Loaded bridge settings from {self.env_path}")

    def get(self, env_var: str, default: T) -> T:
        raw = os.getenv(env_var)
        if raw is None:
            return _expand_home(default) if isinstance(default, str) else default

        if isinstance(default, str):
            return _expand_home(raw)

        # int and float settings (ports, timeouts, thresholds)
        try:
            return type(default)(raw)
        except ValueError:
            logger.warning(f"Ignoring {env_var}={raw!r}: not a valid {type(default).__name__}, using {default}")
            return default


_config_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """Process-wide loader used by settings.py"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader
