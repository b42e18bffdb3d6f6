"""Persisted key/value configuration store"""

import json
import logging
import os
import platform
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class ConfigStore:
    """String key/value settings persisted as a JSON object on disk

    Values saved here are the fallback for settings that the environment
    does not supply (for example OAuth client credentials entered once
    through the CLI).
    """

    def __init__(self, config_file: Optional[str] = None):
        if config_file is None:
            from settings import CONFIG_FILE
            config_file = CONFIG_FILE
        self.config_path = Path(config_file)

    def _load(self) -> Dict[str, str]:
        if not self.config_path.exists():
            return {}

        try:
            data = json.loads(self.config_path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to read config store {self.config_path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config store {self.config_path}: expected object, got {type(data).__name__}")
            return {}
        return data

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a stored value, or ``default`` when the key is absent or not a string"""
        value = self._load().get(key)
        if isinstance(value, str) and value:
            return value
        return default

    def set(self, key: str, value: Optional[str]) -> None:
        """Store a value; ``None`` removes the key"""
        data = self._load()
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(json.dumps(data, indent=2))

        # Credentials may live here, keep the file private
        if platform.system() != "Windows":
            os.chmod(self.config_path, 0o600)

        logger.debug(f"Updated config key {key!r} in {self.config_path}")

    def as_dict(self) -> Dict[str, str]:
        return dict(self._load())
