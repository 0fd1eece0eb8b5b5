"""
Application settings store.

Holds the connection endpoint, the user id and the last configuration
snapshot received from (or pushed to) the runtime. Constructed explicitly and
passed to whoever needs it; persisted as JSON under ~/.cocoro.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, PrivateAttr, ValidationError

from cocoro_ai.models.config import ConfigSettings

logger = logging.getLogger(__name__)

DEFAULT_WEBSOCKET_URL = "ws://127.0.0.1:8080/"
DEFAULT_USER_ID = "user01"

ENV_OVERRIDES = {
    "websocket_url": "COCORO_WS_URL",
    "user_id": "COCORO_USER_ID",
}


def get_settings_dir() -> Path:
    return Path(os.environ.get("COCORO_HOME", Path.home() / ".cocoro"))


def get_settings_path() -> Path:
    return get_settings_dir() / "settings.json"


class AppSettings(BaseModel):
    websocket_url: str = DEFAULT_WEBSOCKET_URL
    user_id: str = DEFAULT_USER_ID
    config: ConfigSettings = Field(default_factory=ConfigSettings)

    _path: Optional[Path] = PrivateAttr(default=None)
    # Env overrides and the file values they shadow; overrides are never saved.
    _overrides: dict[str, str] = PrivateAttr(default_factory=dict)
    _shadowed: dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "AppSettings":
        """Load settings from disk, then apply COCORO_WS_URL / COCORO_USER_ID."""
        path = path or get_settings_path()
        settings = cls()
        try:
            settings = cls.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except FileNotFoundError:
            pass
        except (ValueError, ValidationError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        settings._path = path

        for field, var in ENV_OVERRIDES.items():
            if os.environ.get(var):
                settings._shadowed[field] = getattr(settings, field)
                settings._overrides[field] = os.environ[var]
                setattr(settings, field, os.environ[var])
        return settings

    def save(self, path: Optional[Path] = None) -> Path:
        """Write to disk. Values still equal to an env override keep their file value."""
        path = path or self._path or get_settings_path()
        data = self.model_dump(mode="json", by_alias=True)
        for field, value in self._overrides.items():
            if data[field] == value:
                data[field] = self._shadowed[field]
            else:
                self._shadowed[field] = data[field]
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        self._path = path
        return path

    def snapshot(self) -> ConfigSettings:
        """Full copy of the current configuration."""
        return self.config.model_copy(deep=True)

    def update_config(self, config: ConfigSettings) -> None:
        self.config = config.model_copy(deep=True)
